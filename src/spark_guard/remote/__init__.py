# ABOUTME: Remote package for spark mutations against the Supabase backend.
# ABOUTME: Exports the RemoteMutationClient protocol, the Supabase implementation, and errors.

from spark_guard.remote.client import (
    RemoteMutationClient,
    SupabaseSparkClient,
    UnconfiguredRemoteClient,
)
from spark_guard.remote.exceptions import RemoteAuthError, RemoteError, RemoteRateLimitError

__all__ = [
    "RemoteMutationClient",
    "SupabaseSparkClient",
    "UnconfiguredRemoteClient",
    "RemoteError",
    "RemoteAuthError",
    "RemoteRateLimitError",
]
