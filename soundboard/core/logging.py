import logging
import sys


class SafeExtraFormatter(logging.Formatter):
    """
    Formatter that does not break when a record carries no `extra`.
    Fields passed through `extra={...}` are collected into `record.extra`.
    """

    _RESERVED = set(vars(logging.LogRecord("", 0, "", 0, "", (), None))) | {
        "message",
        "asctime",
        "extra",
    }

    def format(self, record: logging.LogRecord) -> str:
        if not hasattr(record, "extra"):
            record.extra = {
                k: v for k, v in vars(record).items() if k not in self._RESERVED
            }
        return super().format(record)


def setup_logging(level: str = "INFO") -> None:
    handler = logging.StreamHandler(sys.stdout)

    formatter = SafeExtraFormatter(
        fmt="%(asctime)s | %(levelname)s | %(name)s | %(message)s | %(extra)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    handler.setFormatter(formatter)

    root = logging.getLogger()
    root.setLevel(level.upper())
    root.handlers.clear()
    root.addHandler(handler)

    # httpx logs every request at INFO; the push stream alone would flood
    logging.getLogger("httpx").setLevel(logging.WARNING)
