"""Log filters for location privacy and session ID defaults."""

import logging
import re


class CoordinatePrecisionFilter(logging.Filter):
    """Coarsens coordinates in log messages.

    Positions are personal data; three decimals (~100 m) is enough to debug
    a route without recording where someone actually was. Only coordinate
    pairs ("21.027763, 105.834160") and ``lat=``/``lon=`` fields are touched,
    other decimals in the message are left alone.
    """

    COORDINATE_PAIR_PATTERN = re.compile(
        r"(?<![\w.])(-?\d{1,3}\.\d{3})\d*(\s*,\s*)(-?\d{1,3}\.\d{3})\d*(?![\w.])"
    )
    COORDINATE_FIELD_PATTERN = re.compile(r"\b(lat|lon)=(-?\d{1,3}\.\d{3})\d*(?![\w.])")

    def filter(self, record: logging.LogRecord) -> bool:
        if isinstance(record.msg, str) and "." in record.msg:
            msg = self.COORDINATE_PAIR_PATTERN.sub(r"\1\2\3", record.msg)
            record.msg = self.COORDINATE_FIELD_PATTERN.sub(r"\1=\2", msg)
        return True


class DefaultSessionFilter(logging.Filter):
    """Adds default session_id if not present."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "session_id"):
            record.session_id = "-"
        return True
