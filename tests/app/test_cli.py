from __future__ import annotations

import json
import uuid
from pathlib import Path  # noqa: TC003

import pytest

from storemigrate.app import StoreAnalysis
from storemigrate.domain.cancellation import CancellationToken
from storemigrate.domain.errors import NetworkError
from storemigrate.domain.ingest import FileImportReport, PlatformDetection
from storemigrate.domain.model import (
    Confidence,
    EntityKind,
    SourcePlatform,
    SourceShape,
    StageName,
)
from storemigrate.domain.ports.extraction import ExtractionResult
from storemigrate.domain.structure import ImportJob
from storemigrate.ui import cli

TENANT = "00000000-0000-0000-0000-0000000000c1"


def test_detect_prints_platform(
    monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    async def fake_analyze(url: str) -> StoreAnalysis:
        assert url == "https://loja.test"
        return StoreAnalysis(
            detection=PlatformDetection(SourcePlatform.NUVEMSHOP, Confidence.HIGH),
            extraction=ExtractionResult(),
        )

    monkeypatch.setattr(cli, "analyze_store", fake_analyze)

    cli.main(["detect", "https://loja.test"])

    assert json.loads(capsys.readouterr().out) == {"platform": "nuvemshop", "confidence": "high"}


def test_import_file_passes_parsed_arguments(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    captured: dict[str, object] = {}
    export = tmp_path / "clientes.csv"
    export.write_text("Nome;E-mail\nAna;ana@example.com\n", encoding="utf-8")

    async def fake_import(data: bytes, **kwargs: object) -> FileImportReport:
        captured["data"] = data
        captured.update(kwargs)
        return FileImportReport(
            kind=EntityKind.CUSTOMER,
            platform=SourcePlatform.NUVEMSHOP,
            shape=SourceShape.TABULAR,
            rows=1,
            records=1,
            imported=1,
        )

    monkeypatch.setattr(cli, "import_catalog_file", fake_import)

    cli.main(
        [
            "import-file",
            str(export),
            "--tenant-id",
            TENANT,
            "--kind",
            "customer",
            "--platform",
            "nuvemshop",
            "--chunk-size",
            "20",
        ]
    )

    assert captured["data"] == export.read_bytes()
    assert captured["tenant_id"] == uuid.UUID(TENANT)
    assert captured["kind"] is EntityKind.CUSTOMER
    assert captured["platform"] is SourcePlatform.NUVEMSHOP
    assert captured["filename"] == "clientes.csv"
    assert captured["chunk_size"] == 20
    output = json.loads(capsys.readouterr().out)
    assert output["imported"] == 1
    assert output["errors"] == []


def test_import_structure_collects_skipped_stages(
    monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    captured: dict[str, object] = {}

    async def fake_run(tenant_id: uuid.UUID, url: str, **kwargs: object) -> ImportJob:
        captured.update(kwargs)
        return ImportJob(tenant_id=tenant_id, source_url=url)

    monkeypatch.setattr(cli, "run_structure_import", fake_run)

    cli.main(
        [
            "import-structure",
            "https://loja.test",
            "--tenant-id",
            TENANT,
            "--skip",
            "branding",
            "--skip",
            "content-blocks",
        ]
    )

    assert captured["skip"] == [StageName.BRANDING, StageName.CONTENT_BLOCKS]
    output = json.loads(capsys.readouterr().out)
    assert output["tenant_id"] == TENANT
    assert list(output["stages"]) == [stage.value for stage in StageName]


def test_retry_defaults_to_resuming(monkeypatch: pytest.MonkeyPatch) -> None:
    captured: dict[str, object] = {}
    job_id = uuid.uuid4()

    async def fake_retry(
        job: uuid.UUID, stage: StageName, *, resume: bool, cancellation: CancellationToken
    ) -> ImportJob:
        captured.update(job=job, stage=stage, resume=resume)
        assert not cancellation.cancelled
        return ImportJob(tenant_id=uuid.UUID(TENANT), source_url="https://loja.test")

    monkeypatch.setattr(cli, "retry_stage", fake_retry)

    cli.main(["retry", str(job_id), "menus"])

    assert captured == {"job": job_id, "stage": StageName.MENUS, "resume": True}


def test_invalid_uuid_exits_with_usage_error(monkeypatch: pytest.MonkeyPatch) -> None:
    async def fake_status(**_: object) -> ImportJob:
        raise AssertionError("status must not be called")

    monkeypatch.setattr(cli, "job_status", fake_status)

    with pytest.raises(SystemExit) as excinfo:
        cli.main(["status", "--job-id", "not-a-uuid"])

    assert excinfo.value.code == 2


def test_non_positive_chunk_size_exits_with_usage_error(tmp_path: Path) -> None:
    export = tmp_path / "products.json"
    export.write_text("[]", encoding="utf-8")

    with pytest.raises(SystemExit) as excinfo:
        cli.main(
            [
                "import-file",
                str(export),
                "--tenant-id",
                TENANT,
                "--kind",
                "product",
                "--chunk-size",
                "0",
            ]
        )

    assert excinfo.value.code == 2


def test_status_requires_a_target() -> None:
    with pytest.raises(SystemExit) as excinfo:
        cli.main(["status"])

    assert excinfo.value.code == 2


def test_runtime_failure_exits_with_error_code(monkeypatch: pytest.MonkeyPatch) -> None:
    async def fake_analyze(url: str) -> StoreAnalysis:
        raise NetworkError(f"cannot reach {url}")

    monkeypatch.setattr(cli, "analyze_store", fake_analyze)

    with pytest.raises(SystemExit) as excinfo:
        cli.main(["detect", "https://offline.test"])

    assert excinfo.value.code == 1


def test_import_structure_receives_the_callers_cancellation_token(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    token = CancellationToken()
    seen: list[object] = []

    async def fake_run(tenant_id: uuid.UUID, url: str, **kwargs: object) -> ImportJob:
        seen.append(kwargs["cancellation"])
        return ImportJob(tenant_id=tenant_id, source_url=url)

    monkeypatch.setattr(cli, "run_structure_import", fake_run)

    cli.main(["import-structure", "https://loja.test", "--tenant-id", TENANT], cancellation=token)

    assert seen == [token]


def test_first_ctrl_c_cancels_and_second_exits() -> None:
    token = CancellationToken()
    handle = cli.sigint_handler(token)

    handle(2, None)

    assert token.cancelled
    assert token.reason == "interrupted by user (Ctrl+C)"
    with pytest.raises(SystemExit) as excinfo:
        handle(2, None)
    assert excinfo.value.code == 0
