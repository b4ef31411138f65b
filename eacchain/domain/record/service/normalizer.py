"""RecordNormalizer - turns one raw tabular row into an immutable Record."""

import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any

from eacchain.domain.record.model.record import SKIP, Record, Skip
from eacchain.domain.record.model.rules import NormalizationRules, RenameRule
from eacchain.domain.shared.error import ValidationError
from eacchain.domain.shared.service import Service

logger = logging.getLogger(__name__)

# Numeric-only formats; strptime does not consult the locale for these directives.
# Slash dates are month-first, matching the source spreadsheets.
DATE_FORMATS: tuple[str, ...] = ("%Y-%m-%d", "%Y/%m/%d", "%m/%d/%Y", "%d.%m.%Y")
DATETIME_FORMATS: tuple[str, ...] = (
    "%Y-%m-%dT%H:%M:%S",
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%dT%H:%M",
    "%Y-%m-%d %H:%M",
    "%m/%d/%Y %H:%M:%S",
    "%m/%d/%Y %H:%M",
)


@dataclass
class NormalizationResult:
    """Outcome of normalizing one row, with the compatibility rules that fired."""

    record: Record | Skip
    applied_rules: list[str] = field(default_factory=list)


class RecordNormalizer(Service):
    """Pure transform from raw rows to Records. Never mutates the input row."""

    date_formats: tuple[str, ...] = DATE_FORMATS
    datetime_formats: tuple[str, ...] = DATETIME_FORMATS

    def normalize(self, row: dict[str, Any], rules: NormalizationRules, kind: str) -> Record | Skip:
        return self.normalize_with_trace(row, rules, kind).record

    def normalize_with_trace(
        self, row: dict[str, Any], rules: NormalizationRules, kind: str
    ) -> NormalizationResult:
        """Normalize `row` and report which named rename rules were applied.

        Raises:
            ValidationError: A numeric or date column holds an unparseable value.
        """
        values = self._clean_columns(row)

        applied: list[str] = []
        for rule in rules.renames:
            if self._apply_rename(values, rule):
                applied.append(rule.name)
                logger.debug(
                    f"Applied compatibility rule '{rule.name}' ({rule.source} -> {rule.target}) "
                    f"to {kind} row"
                )

        key = values.get(rules.key_field)
        if key is None:
            return NormalizationResult(record=SKIP, applied_rules=applied)

        data: dict[str, Any] = {}
        for name, value in values.items():
            if name in rules.redact:
                continue
            if name in rules.numeric:
                data[name] = self.coerce_number(value, name)
            elif name in rules.dates:
                data[name] = self.normalize_date(value, name)
            elif isinstance(value, (datetime, date)):
                data[name] = self.normalize_date(value, name)
            else:
                data[name] = value

        return NormalizationResult(record=Record(kind=kind, data=data), applied_rules=applied)

    # -------------------------------------------------------------------------
    # Field transforms
    # -------------------------------------------------------------------------

    @staticmethod
    def coerce_number(value: Any, name: str = "") -> int | float | None:
        """Convert "1,250.5" style strings to numbers; integral values become ints."""
        if value is None:
            return None
        if isinstance(value, bool):
            raise ValidationError(f"Expected a number in '{name}', got {value!r}", field=name)
        if isinstance(value, int):
            return value
        if isinstance(value, float):
            return int(value) if value.is_integer() else value

        text = str(value).strip().replace(",", "")
        if not text:
            return None
        try:
            number = Decimal(text)
        except InvalidOperation:
            raise ValidationError(f"Expected a number in '{name}', got {value!r}", field=name)
        if not number.is_finite():
            raise ValidationError(f"Expected a finite number in '{name}', got {value!r}", field=name)
        if number == number.to_integral_value():
            return int(number)
        return float(number)

    def normalize_date(self, value: Any, name: str = "") -> str | None:
        """Render a date-like value as ISO-8601 independent of locale."""
        if value is None:
            return None
        if isinstance(value, datetime):
            return value.isoformat(timespec="seconds")
        if isinstance(value, date):
            return value.isoformat()

        text = str(value).strip()
        if not text:
            return None
        for fmt in self.date_formats:
            try:
                return datetime.strptime(text, fmt).date().isoformat()
            except ValueError:
                continue
        for fmt in self.datetime_formats:
            try:
                return datetime.strptime(text, fmt).isoformat(timespec="seconds")
            except ValueError:
                continue
        try:
            # Offsets and trailing "Z"
            return datetime.fromisoformat(text).isoformat(timespec="seconds")
        except ValueError:
            raise ValidationError(f"Unrecognized date in '{name}': {value!r}", field=name)

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    @staticmethod
    def _clean_columns(row: dict[str, Any]) -> dict[str, Any]:
        """Copy the row with stripped column names; blank strings become None."""
        values: dict[str, Any] = {}
        for raw_name, value in row.items():
            if raw_name is None:
                continue
            name = str(raw_name).strip()
            if not name:
                continue
            if isinstance(value, str):
                value = value.strip() or None
            values[name] = value
        return values

    @staticmethod
    def _apply_rename(values: dict[str, Any], rule: RenameRule) -> bool:
        if rule.source not in values or values.get(rule.target) is not None:
            return False
        renamed = {}
        for name, value in values.items():
            if name == rule.target:
                continue
            renamed[rule.target if name == rule.source else name] = value
        values.clear()
        values.update(renamed)
        return True
