import json

import httpx
import pytest

from src.client import DeployClient
from src.deploy import main

from conftest import PASSWORD, USERNAME


@pytest.fixture
def client(http):
    return DeployClient("http://testserver", USERNAME, PASSWORD, http=http)


def test_publish_consume_delete_flow(client, record, tmp_path, capsys):
    assert main(["publish", "credit_default", "1.0.0", "--model_uri", "models/v1"], client=client) == 0
    assert json.loads(capsys.readouterr().out)["revision"] == 1

    record_path = tmp_path / "record.json"
    record_path.write_text(json.dumps(record))
    assert main(["consume", "credit_default", "1.0.0", "--record", str(record_path)], client=client) == 0
    assert json.loads(capsys.readouterr().out) == [
        {"account_id": "a_1", "scored_label": 0, "scored_prob": 0.12}
    ]

    assert main(["update", "credit_default", "1.0.0", "--model_uri", "models/v2"], client=client) == 0
    assert json.loads(capsys.readouterr().out)["revision"] == 2

    assert main(["delete", "credit_default", "1.0.0"], client=client) == 0
    capsys.readouterr()


def test_missing_service_exits_non_zero(client, capsys):
    assert main(["get", "credit_default", "9.9.9"], client=client) == 1
    assert capsys.readouterr().out == ""


def test_swagger_command(client, capsys):
    main(["publish", "credit_default", "1.0.0", "--model_uri", "models/v1"], client=client)
    capsys.readouterr()

    assert main(["swagger", "credit_default", "1.0.0"], client=client) == 0
    assert json.loads(capsys.readouterr().out)["swagger"] == "2.0"


def test_unreachable_server_exits_non_zero(monkeypatch):
    real_client = httpx.Client
    created = []

    def refusing_client(**kwargs):
        def refuse(request):
            raise httpx.ConnectError("[Errno 111] Connection refused", request=request)

        c = real_client(transport=httpx.MockTransport(refuse), **kwargs)
        created.append(c)
        return c

    monkeypatch.setattr(httpx, "Client", refusing_client)

    assert main(["--url", "http://127.0.0.1:9", "list"]) == 1
    assert len(created) == 1
    assert created[0].is_closed


def test_unreadable_record_file_exits_non_zero(client, tmp_path, capsys):
    main(["publish", "credit_default", "1.0.0", "--model_uri", "models/v1"], client=client)
    capsys.readouterr()

    missing = str(tmp_path / "missing.json")
    assert main(["consume", "credit_default", "1.0.0", "--record", missing], client=client) == 1

    broken = tmp_path / "broken.json"
    broken.write_text("{not json")
    assert main(["consume", "credit_default", "1.0.0", "--record", str(broken)], client=client) == 1
    assert capsys.readouterr().out == ""
