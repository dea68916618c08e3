import json
from unittest.mock import patch

from authflow.observability.logging import log
from authflow.settings import settings


def _last_line(capsys):
    return json.loads(capsys.readouterr().out.strip().splitlines()[-1])


def test_sensitive_fields_are_redacted(capsys):
    with patch.object(settings, "ENABLE_PII_REDACTION", True):
        log("submission_failed", formId="f-1", password="hunter22",
            payload={"ssn": "1234", "city": "London"})
    line = _last_line(capsys)
    assert line["event"] == "submission_failed"
    assert line["formId"] == "f-1"
    assert line["password"] == "[REDACTED:8chars]"
    assert line["payload"] == {"ssn": "[REDACTED:4chars]", "city": "London"}


def test_redaction_can_be_disabled(capsys):
    with patch.object(settings, "ENABLE_PII_REDACTION", False):
        log("debug", email="a@b.com")
    assert _last_line(capsys)["email"] == "a@b.com"
