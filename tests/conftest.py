"""Shared fixtures and sample transcripts."""

import pytest

HELLO_WORLD = """\
Codeunit 50000 HelloWorld Test Success (0.30 seconds)
  Testfunction TestHello Success (0.10 seconds)
  Testfunction TestWorld Failure (0.05 seconds)
    Error:
      Expected true but was false
"""

SALES_RUN = """\
Connecting to http://localhost:80/BC/cs?tenant=default
Running tests in container bcserver
  Codeunit 50100 Sales Posting Tests Failure (2.512 seconds)
    Testfunction TestPostInvoice Success (1.02 seconds)
    Testfunction TestPostCreditMemo Failure (0.271 seconds)
      Error:
        Assert.AreEqual failed. Expected:<10> (Integer). Actual:<0> (Integer).
        Amount on the posted credit memo
      Call Stack:
        "Sales Posting Tests"(CodeUnit 50100).TestPostCreditMemo line 18 - Sales Tests by Contoso
  Codeunit 50101 Purchase Tests Success (0.9 seconds)
    Testfunction TestReceive Skipped (0.00 seconds)
    Testfunction TestInvoice Success (0.9 seconds)
"""


@pytest.fixture
def clean_env(monkeypatch, tmp_path):
    """Isolate configuration: no config env vars, cwd without a .env file."""
    for key in ['BC_TEST_ANALYZER_CONFIG', 'PATTERNS_FILE', 'DEFAULT_FORMAT',
                'FASTMCP_PORT', 'LOG_LEVEL']:
        monkeypatch.delenv(key, raising=False)
    monkeypatch.chdir(tmp_path)
    return tmp_path
