# ABOUTME: Supabase client wrapper for inserting and removing spark reactions.
# ABOUTME: Wraps supabase-py and converts library errors into RemoteError subclasses.

from typing import Any, Protocol

import structlog
from supabase import Client, create_client

from spark_guard.remote.exceptions import RemoteAuthError, RemoteError, RemoteRateLimitError

logger = structlog.get_logger(__name__)

REACTIONS_TABLE = "spark_reactions"
SPARK_REACTION_TYPE = "SPARK"


class RemoteMutationClient(Protocol):
    """Backend operations that make up a spark and its reversal.

    The insert is idempotent at the data layer through a unique constraint
    on (post_id, user_id); atomicity between the insert and the counter RPC
    is the backend's concern.
    """

    def insert_reaction(self, post_id: str, user_id: str) -> None: ...

    def increment_spark_count(self, post_id: str) -> None: ...

    def delete_reaction(self, post_id: str, user_id: str) -> None: ...

    def decrement_spark_count(self, post_id: str) -> None: ...

    def has_reaction(self, post_id: str, user_id: str) -> bool: ...


class SupabaseSparkClient:
    """RemoteMutationClient backed by a Supabase project."""

    def __init__(self, url: str, key: str, client: Client | None = None) -> None:
        """Create a client for the given Supabase project.

        Args:
            url: Supabase project URL.
            key: API key used for requests.
            client: Pre-built supabase Client, mainly for tests.

        Raises:
            RemoteError: If the client cannot be created.
        """
        if client is not None:
            self._client = client
            return
        try:
            self._client = create_client(url.rstrip("/"), key)
        except Exception as e:
            raise self._wrap_exception(e) from e

    def _wrap_exception(self, exception: Exception) -> RemoteError:
        """Convert a library exception to the matching RemoteError subclass.

        Args:
            exception: The original exception raised by supabase-py.

        Returns:
            The RemoteError subclass for the exception.
        """
        code = str(getattr(exception, "code", "") or "")
        error_message = f"{code} {exception}".lower()

        if "429" in error_message or "rate limit" in error_message:
            return RemoteRateLimitError(str(exception))

        if (
            "401" in error_message
            or "403" in error_message
            or "jwt" in error_message
            or "unauthorized" in error_message
        ):
            return RemoteAuthError(str(exception))

        return RemoteError(str(exception))

    def _run(self, operation: str, call: Any) -> Any:
        try:
            return call()
        except Exception as e:
            logger.error("remote_call_failed", operation=operation, error=str(e))
            raise self._wrap_exception(e) from e

    def insert_reaction(self, post_id: str, user_id: str) -> None:
        """Insert a spark reaction row.

        Raises:
            RemoteError: If the insert fails.
        """
        self._run(
            "insert_reaction",
            lambda: self._client.table(REACTIONS_TABLE)
            .insert({"post_id": post_id, "user_id": user_id, "type": SPARK_REACTION_TYPE})
            .execute(),
        )

    def increment_spark_count(self, post_id: str) -> None:
        """Increment the post's spark counter through the increment_spark_count RPC."""
        self._run(
            "increment_spark_count",
            lambda: self._client.rpc("increment_spark_count", {"post_id": post_id}).execute(),
        )

    def delete_reaction(self, post_id: str, user_id: str) -> None:
        """Delete the user's reaction row for a post."""
        self._run(
            "delete_reaction",
            lambda: self._client.table(REACTIONS_TABLE)
            .delete()
            .eq("post_id", post_id)
            .eq("user_id", user_id)
            .execute(),
        )

    def decrement_spark_count(self, post_id: str) -> None:
        """Decrement the post's spark counter through the decrement_spark_count RPC."""
        self._run(
            "decrement_spark_count",
            lambda: self._client.rpc("decrement_spark_count", {"post_id": post_id}).execute(),
        )

    def has_reaction(self, post_id: str, user_id: str) -> bool:
        """Check whether the user already sparked the post.

        Returns:
            True if a SPARK reaction row exists for (post_id, user_id).
        """
        response = self._run(
            "has_reaction",
            lambda: self._client.table(REACTIONS_TABLE)
            .select("id")
            .eq("post_id", post_id)
            .eq("user_id", user_id)
            .eq("type", SPARK_REACTION_TYPE)
            .limit(1)
            .execute(),
        )
        return bool(response.data)


class UnconfiguredRemoteClient:
    """RemoteMutationClient used when no backend credentials are configured.

    Every call raises RemoteError, so the orchestrator queues sparks instead
    of delivering them.
    """

    MESSAGE = (
        "Supabase is not configured "
        "(set SPARK_GUARD_SUPABASE_URL and SPARK_GUARD_SUPABASE_KEY)"
    )

    def insert_reaction(self, post_id: str, user_id: str) -> None:
        raise RemoteError(self.MESSAGE)

    def increment_spark_count(self, post_id: str) -> None:
        raise RemoteError(self.MESSAGE)

    def delete_reaction(self, post_id: str, user_id: str) -> None:
        raise RemoteError(self.MESSAGE)

    def decrement_spark_count(self, post_id: str) -> None:
        raise RemoteError(self.MESSAGE)

    def has_reaction(self, post_id: str, user_id: str) -> bool:
        raise RemoteError(self.MESSAGE)
