"""Custom error types for the manga-views merge jobs.

All errors follow the "fail fast" principle with explicit messages.
"""


class MangaViewsError(Exception):
    """Base exception for all manga-views errors."""

    pass


class StorageError(MangaViewsError):
    """Error reading, writing or deleting a document on disk."""

    pass


class MalformedDocumentError(StorageError):
    """Document exists but could not be parsed as JSON.

    Fatal when raised for an aggregate document. Staging documents that fail
    to parse are treated as "nothing pending" by the merge pipelines.
    """

    def __init__(self, name: str, reason: str):
        self.name = name
        self.reason = reason
        super().__init__(f"Malformed document {name}: {reason}")


class MergeError(MangaViewsError):
    """Error during a merge run."""

    pass


class AggregateNotFoundError(MergeError):
    """The aggregate document a merge folds into does not exist."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"{name} not found, nothing to merge into")


class StagingCleanupError(MergeError):
    """Staging data could not be removed after a successful merge.

    Leaving it in place would double-apply the same deltas on the next run.
    """

    pass
