"""Shared pytest fixtures for BillSync tests."""
import os
import sys

# Keep tests away from any real provider key or ledger on the machine
os.environ["OPENAI_API_KEY"] = ""
os.environ["LEDGER_PATH"] = "/tmp/billsync-test/ledger.json"

# Ensure project root is on sys.path so `sms_bills`, `schemas`, ... resolve
project_root = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if project_root not in sys.path:
    sys.path.insert(0, project_root)

import pytest  # noqa: E402

from repositories.ledger_repo import LedgerRepository  # noqa: E402
from sms_bills.errors import ExtractionUnavailable  # noqa: E402
from helpers import FakeExtractor  # noqa: E402


@pytest.fixture
def ledger_path(tmp_path):
    return str(tmp_path / "ledger.json")


@pytest.fixture
def repo(ledger_path):
    return LedgerRepository(ledger_path)


@pytest.fixture
def unavailable_extractor():
    return FakeExtractor(error=ExtractionUnavailable("AI not configured. Please set OPENAI_API_KEY."))
