"""Tests for store helpers."""

from __future__ import annotations

import re
from datetime import datetime

from linkctl.infrastructure._helpers import now_iso, record_label, today_iso


class TestTimestamps:
    def test_today_iso(self) -> None:
        assert re.fullmatch(r"\d{4}-\d{2}-\d{2}", today_iso())

    def test_now_iso_is_timezone_aware(self) -> None:
        assert datetime.fromisoformat(now_iso()).tzinfo is not None


class TestRecordLabel:
    def test_uses_label_field(self) -> None:
        assert record_label({"order_number": "A-17"}, "order_number", "REC-0001") == "A-17"

    def test_falls_back_when_missing_or_empty(self) -> None:
        assert record_label({}, "order_number", "REC-0001") == "REC-0001"
        assert record_label({"order_number": ""}, "order_number", "REC-0001") == "REC-0001"

    def test_stringifies(self) -> None:
        assert record_label({"n": 7}, "n", "REC-0001") == "7"
