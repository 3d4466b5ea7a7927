from __future__ import annotations

import logging

_FORMAT = "%(levelname)s %(name)s: %(message)s"


class LogSink(logging.Handler):
    """Collects every log record of one invocation so it can be attached to a Discord report."""

    def __init__(self, level: int = logging.DEBUG, logger_name: str = "tagwatch_core"):
        super().__init__(level)
        self.logger_name = logger_name
        self.records: list[str] = []
        self.setFormatter(logging.Formatter(_FORMAT))

    def emit(self, record: logging.LogRecord) -> None:
        try:
            self.records.append(self.format(record))
        except Exception:
            self.handleError(record)

    def collect(self) -> str:
        return "\n".join(self.records)

    def __enter__(self) -> LogSink:
        target = logging.getLogger(self.logger_name)
        target.addHandler(self)
        if target.level == logging.NOTSET or target.level > self.level:
            self._previous_level = target.level
            target.setLevel(self.level)
        else:
            self._previous_level = None
        return self

    def __exit__(self, *exc_info) -> None:
        target = logging.getLogger(self.logger_name)
        target.removeHandler(self)
        if self._previous_level is not None:
            target.setLevel(self._previous_level)
