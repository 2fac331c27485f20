"""Tests for the query, prepare and health commands."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING

import httpx
import pytest
from click.testing import CliRunner

from enquery.cli.main import cli, main
from enquery.cli.query import ref_id_for

if TYPE_CHECKING:
    from pathlib import Path

    from pytest_httpx import HTTPXMock

QUERY_URL = "https://api.enapter.test/v3/telemetry/query_timeseries"
WINDOW = ["--from", "1970-01-01T00:00:05Z", "--to", "1970-01-01T00:00:10Z"]


def _run_main(capsys: pytest.CaptureFixture[str], *argv: str) -> tuple[int, str]:
    try:
        main(list(argv))
    except SystemExit as exc:
        code = exc.code if isinstance(exc.code, int) else 1
    else:
        code = 0
    return code, capsys.readouterr().out


def _csv_for(attribute: str) -> httpx.Response:
    body = f"ts,device=d1 telemetry={attribute}\n3,1.5\n4,\n"
    return httpx.Response(
        200,
        headers={"Content-Type": "text/csv", "X-Enapter-Timeseries-Data-Types": "float"},
        text=body,
    )


def _answer_by_attribute(request: httpx.Request) -> httpx.Response:
    query = json.loads(request.content)
    return _csv_for(query["telemetry"][0]["attribute"])


class TestRefIds:
    @pytest.mark.parametrize(
        ("index", "expected"), [(0, "A"), (1, "B"), (25, "Z"), (26, "AA"), (27, "AB"), (701, "ZZ")]
    )
    def test_spreadsheet_letters(self, index: int, expected: str) -> None:
        assert ref_id_for(index) == expected


class TestPrepare:
    def test_json_output(
        self, cli_env: dict[str, str], tmp_path: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        path = tmp_path / "q.yaml"
        path.write_text('"@offset": 2s\ngranularity: 42s\n', encoding="utf-8")

        code, out = _run_main(capsys, "--format", "json", "prepare", str(path), *WINDOW)

        assert code == 0
        parsed = json.loads(out)
        assert parsed["command"] == "prepare"
        assert parsed["data"] == {
            "query": (
                '{"aggregation":"auto","from":"1970-01-01T00:00:03Z",'
                '"granularity":"42s","to":"1970-01-01T00:00:08Z"}'
            ),
            "offset": "2s",
        }

    def test_rich_output(self, cli_env: dict[str, str], query_file: Path) -> None:
        result = CliRunner().invoke(
            cli, ["prepare", str(query_file), *WINDOW, "--interval", "90s", "--format", "rich"]
        )
        assert result.exit_code == 0, result.output
        assert '"granularity":"2m0s"' in result.output

    def test_invalid_yaml(
        self, cli_env: dict[str, str], tmp_path: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        path = tmp_path / "bad.yaml"
        path.write_text("that's not yaml", encoding="utf-8")

        code, out = _run_main(capsys, "--format", "json", "prepare", str(path), *WINDOW)

        assert code == 1
        parsed = json.loads(out)
        assert parsed["ok"] is False
        assert parsed["error"]["code"] == "InvalidDocumentError"
        assert parsed["error"]["message"] == "The query is not a valid YAML."

    def test_window_reversed(
        self, cli_env: dict[str, str], query_file: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        code, _ = _run_main(
            capsys,
            "prepare",
            str(query_file),
            "--from",
            "1970-01-01T00:00:10Z",
            "--to",
            "1970-01-01T00:00:05Z",
        )
        assert code == 2

    def test_bad_interval(self, cli_env: dict[str, str], query_file: Path) -> None:
        result = CliRunner().invoke(cli, ["prepare", str(query_file), *WINDOW, "--interval", "9"])
        assert result.exit_code == 2
        assert "not a valid duration" in result.output


class TestQuery:
    def test_two_files(
        self,
        cli_env: dict[str, str],
        tmp_path: Path,
        httpx_mock: HTTPXMock,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        for _ in range(2):
            httpx_mock.add_callback(_answer_by_attribute, url=QUERY_URL, method="POST")
        flow = tmp_path / "flow.yaml"
        flow.write_text("telemetry:\n  - device: d1\n    attribute: h2_flow\n", encoding="utf-8")
        status = tmp_path / "status.yaml"
        status.write_text("telemetry:\n  - device: d1\n    attribute: status\n", encoding="utf-8")

        code, out = _run_main(
            capsys, "--format", "json", "query", str(flow), str(status), *WINDOW, "--user", "bob"
        )

        assert code == 0
        data = json.loads(out)["data"]
        assert list(data) == ["A", "B"]
        a_value = data["A"]["frames"][0]["fields"][1]
        b_value = data["B"]["frames"][0]["fields"][1]
        assert a_value["labels"] == {"telemetry": "h2_flow"}
        assert b_value["labels"] == {"telemetry": "status"}
        assert a_value["values"] == [1.5, None]

        for request in httpx_mock.get_requests():
            assert request.headers["X-Enapter-Auth-Token"] == "test-token-123"
            assert request.headers["X-Enapter-Auth-User"] == "bob"

    def test_upstream_error_exits_nonzero(
        self,
        cli_env: dict[str, str],
        query_file: Path,
        httpx_mock: HTTPXMock,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        httpx_mock.add_response(
            url=QUERY_URL,
            method="POST",
            status_code=422,
            json={"errors": [{"code": "unprocessable_entity", "message": "Unknown device."}]},
        )

        code, out = _run_main(capsys, "--format", "json", "query", str(query_file), *WINDOW)

        assert code == 1
        data = json.loads(out)["data"]
        assert data["A"] == {"frames": [], "error": "Unknown device."}

    def test_v1_flag(
        self, cli_env: dict[str, str], query_file: Path, httpx_mock: HTTPXMock
    ) -> None:
        httpx_mock.add_callback(
            _answer_by_attribute,
            url="https://api.enapter.test/telemetry/v1/timeseries",
            method="POST",
        )
        result = CliRunner().invoke(
            cli, ["query", str(query_file), *WINDOW, "--api-version", "v1", "--format", "rich"]
        )
        assert result.exit_code == 0, result.output
        assert "h2_flow" in result.output

    def test_missing_token(
        self,
        cli_env: dict[str, str],
        query_file: Path,
        monkeypatch: pytest.MonkeyPatch,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        monkeypatch.delenv("ENAPTER_API_TOKEN")

        code, out = _run_main(capsys, "--format", "json", "query", str(query_file), *WINDOW)

        assert code == 1
        parsed = json.loads(out)
        assert parsed["error"]["code"] == "config_error"
        assert "ENAPTER_API_TOKEN" in parsed["error"]["message"]


class TestHealth:
    def test_ready(
        self, cli_env: dict[str, str], httpx_mock: HTTPXMock, capsys: pytest.CaptureFixture[str]
    ) -> None:
        httpx_mock.add_response(
            url=QUERY_URL,
            method="POST",
            status_code=422,
            json={"errors": [{"code": "unprocessable_entity"}]},
        )

        code, out = _run_main(capsys, "--format", "json", "health")

        assert code == 0
        assert json.loads(out)["data"] == {
            "status": "ok",
            "api_url": "https://api.enapter.test",
            "api_version": "v3",
        }

    def test_not_ready(
        self, cli_env: dict[str, str], httpx_mock: HTTPXMock, capsys: pytest.CaptureFixture[str]
    ) -> None:
        httpx_mock.add_response(
            url=QUERY_URL,
            method="POST",
            status_code=401,
            json={"errors": [{"code": "unauthenticated", "message": "Invalid token."}]},
        )

        code, out = _run_main(capsys, "--format", "json", "health")

        assert code == 1
        parsed = json.loads(out)
        assert parsed["error"]["code"] == "MultiError"
        assert "unauthenticated" in parsed["error"]["message"]
