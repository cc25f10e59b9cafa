"""API version-date negotiation.

Every request carries the configured ``version`` date verbatim. The date is
also mapped onto one of the dated API releases the client knows about so that
callers can branch on a named epoch instead of comparing raw strings.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from datetime import date
from typing import Optional

from .errors import ConfigurationError
from .logging_utils import configure_logging, log_event

logger = configure_logging()

VERSION_DATE_2016_12_15 = "2016-12-15"
VERSION_DATE_2017_04_27 = "2017-04-27"
VERSION_DATE_2017_08_01 = "2017-08-01"


class EffectiveVersion(enum.Enum):
    V2016_12_15 = VERSION_DATE_2016_12_15
    V2017_04_27 = VERSION_DATE_2017_04_27
    V2017_08_01 = VERSION_DATE_2017_08_01

    @property
    def released(self) -> date:
        return date.fromisoformat(self.value)


_EPOCHS = sorted(EffectiveVersion, key=lambda member: member.released)


@dataclass(frozen=True)
class NegotiatedVersion:
    date: str
    epoch: EffectiveVersion


def _parse_version_date(value: str) -> Optional[date]:
    try:
        return date.fromisoformat(value)
    except ValueError:
        return None


def resolve_epoch(version_date: str) -> EffectiveVersion:
    """Return the newest known release not later than ``version_date``."""
    parsed = _parse_version_date(version_date)
    if parsed is None:
        log_event(logger, level=logging.WARNING, event="version.unrecognized", version_date=version_date)
        return _EPOCHS[-1]
    chosen = _EPOCHS[0]
    for epoch in _EPOCHS:
        if epoch.released <= parsed:
            chosen = epoch
    return chosen


def negotiate(config) -> NegotiatedVersion:
    version_date = getattr(config, "version_date", None)
    if not isinstance(version_date, str) or not version_date.strip():
        raise ConfigurationError(
            "Argument error: version_date was not specified, use a dated release such as '2017-08-01'.",
            {"missing": ["version_date"]},
        )
    return NegotiatedVersion(date=version_date, epoch=resolve_epoch(version_date.strip()))
