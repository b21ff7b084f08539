import logging
import secrets
import time

from starlette.requests import Request

logger = logging.getLogger("datachat.context")

CONTEXT_KEY = "context"
SESSION_ID_KEY = "sid"

# Browsers drop cookies larger than roughly 4 KB; the signed payload adds overhead.
COOKIE_WARN_CHARS = 3000


def append_exchange(context: str, query: str, answer: str) -> str:
    return context + "\n" + query + "\n" + answer


class ContextStore:
    """Per-client chat context, keyed by the signed session cookie.

    ``max_chars`` > 0 keeps only the trailing characters of the context.
    """

    def __init__(self, max_chars: int = 0):
        self.max_chars = max_chars

    def get_context(self, request: Request) -> str:
        raise NotImplementedError

    def set_context(self, request: Request, context: str) -> None:
        raise NotImplementedError

    def clear_context(self, request: Request) -> None:
        raise NotImplementedError

    def _trim(self, context: str) -> str:
        if self.max_chars > 0 and len(context) > self.max_chars:
            return context[-self.max_chars :]
        return context


class CookieContextStore(ContextStore):
    def get_context(self, request: Request) -> str:
        value = request.session.get(CONTEXT_KEY)
        return value if isinstance(value, str) else ""

    def set_context(self, request: Request, context: str) -> None:
        context = self._trim(context)
        if len(context) > COOKIE_WARN_CHARS:
            logger.warning(
                "Chat context is %d characters; the session cookie may exceed browser limits. "
                "Set MAX_CONTEXT_CHARS or CONTEXT_BACKEND=memory.",
                len(context),
            )
        request.session[CONTEXT_KEY] = context

    def clear_context(self, request: Request) -> None:
        request.session.pop(CONTEXT_KEY, None)


class MemoryContextStore(ContextStore):
    """Keeps contexts in process memory; the cookie only carries a session id.

    Entries not written for ``max_age_seconds`` are dropped, matching the
    lifetime of the session cookie. ``max_age_seconds`` <= 0 disables expiry.
    """

    def __init__(self, max_chars: int = 0, max_age_seconds: float = 0, clock=time.monotonic):
        super().__init__(max_chars)
        self.max_age_seconds = max_age_seconds
        self._clock = clock
        self._contexts: dict[str, tuple[str, float]] = {}

    @property
    def session_count(self) -> int:
        return len(self._contexts)

    def _session_id(self, request: Request, create: bool) -> str | None:
        session_id = request.session.get(SESSION_ID_KEY)
        if isinstance(session_id, str) and session_id:
            return session_id
        if not create:
            return None
        session_id = secrets.token_urlsafe(24)
        request.session[SESSION_ID_KEY] = session_id
        return session_id

    def _is_expired(self, last_seen: float, now: float) -> bool:
        return self.max_age_seconds > 0 and now - last_seen > self.max_age_seconds

    def prune(self) -> int:
        now = self._clock()
        expired = [key for key, (_, last_seen) in self._contexts.items() if self._is_expired(last_seen, now)]
        for key in expired:
            del self._contexts[key]
        if expired:
            logger.debug("Dropped %d expired chat contexts", len(expired))
        return len(expired)

    def get_context(self, request: Request) -> str:
        session_id = self._session_id(request, create=False)
        if session_id is None or session_id not in self._contexts:
            return ""
        context, last_seen = self._contexts[session_id]
        if self._is_expired(last_seen, self._clock()):
            del self._contexts[session_id]
            return ""
        return context

    def set_context(self, request: Request, context: str) -> None:
        session_id = self._session_id(request, create=True)
        self.prune()
        self._contexts[session_id] = (self._trim(context), self._clock())

    def clear_context(self, request: Request) -> None:
        session_id = self._session_id(request, create=False)
        if session_id is not None:
            self._contexts.pop(session_id, None)


def build_context_store(backend: str, max_chars: int = 0, max_age_seconds: float = 0) -> ContextStore:
    if backend == "memory":
        return MemoryContextStore(max_chars, max_age_seconds=max_age_seconds)
    if backend == "cookie":
        return CookieContextStore(max_chars)
    raise ValueError(f"Unknown context backend: {backend}")
