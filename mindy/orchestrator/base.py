import logging
from contextlib import contextmanager
from typing import Iterator

from mindy.errors import ChannelError, ChannelUnavailable, ListenerUnavailable, MindyError, ResponseParseError

logger = logging.getLogger("mindy.orchestrator")


@contextmanager
def translate_errors(location: str) -> Iterator[None]:
    """Re-raise collaborator failures as MindyError kinds."""
    try:
        yield
    except ChannelUnavailable as e:
        raise ListenerUnavailable(location) from e
    except MindyError:
        raise
    except OSError as e:
        logger.error(f"Mailbox I/O failed: {e}")
        raise ChannelError(f"Mailbox I/O failed: {e}") from e
    except ValueError as e:
        # pydantic ValidationError is a ValueError
        logger.error(f"Malformed listener response: {e}")
        raise ResponseParseError(f"Malformed listener response: {e}") from e
