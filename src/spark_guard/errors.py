# ABOUTME: Root exception for spark-guard.
# ABOUTME: Rate-limit, remote, and offline queue errors all derive from it.


class SparkGuardError(Exception):
    """Base exception for all spark-guard errors.

    Callers that only need to know "the guard refused or failed" can catch
    this single type; the CLI does so to render an error panel.
    """

    pass
