from typing import Iterable, Optional


def read_int_option(options: Optional[Iterable], key: str, logger=None) -> Optional[int]:
    """Integer value of an advanced option / extraConfig entry, None when absent or invalid."""
    if not options:
        return None
    wanted = key.lower()
    for option in options:
        option_key = getattr(option, "key", None)
        if not option_key or str(option_key).lower() != wanted:
            continue
        value = getattr(option, "value", None)
        try:
            parsed = int(str(value).strip())
        except (TypeError, ValueError):
            if logger is not None:
                logger.debug("Ignoring non-numeric %s=%r", key, value)
            return None
        return parsed if parsed >= 1 else None
    return None
