from collections import namedtuple
import logging

logger = logging.getLogger(__name__)

# Result of a secondary write (audit row, role reset, cache drop).
Outcome = namedtuple('Outcome', ['ok', 'error'])
Outcome.__new__.__defaults__ = (None,)

SUCCEEDED = Outcome(True)


def failed(error):
    return Outcome(False, str(error) or error.__class__.__name__)


def attempt(label, func, *args, **kwargs):
    """Run ``func`` as a best-effort step and report how it went.

    Failures are logged with traceback and returned as ``Outcome(False,
    error)``; the caller decides whether to mention them, but the primary
    operation goes on regardless.
    """
    try:
        func(*args, **kwargs)
    except Exception as exc:
        logger.warning("Best-effort step %s failed: %s", label, exc,
                       exc_info=True)
        return failed(exc)
    return SUCCEEDED
