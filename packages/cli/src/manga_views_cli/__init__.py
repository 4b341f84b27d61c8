"""manga-views CLI - command-line entry point for the merge jobs."""
