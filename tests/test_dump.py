import asyncio
from collections.abc import Callable

import pytest

from harvester.configs import ConfigurationSnapshot
from harvester.domain.pdf_data import PdfData
from harvester.pipeline import EXIT_CANCELLED, InvocationContext
from harvester.usecase import DumpPdfText


@pytest.fixture
def snapshot(make_snapshot: Callable[..., ConfigurationSnapshot]) -> ConfigurationSnapshot:
    snapshot = make_snapshot()
    for path in snapshot.output_paths:
        path.mkdir(parents=True)
    return snapshot


@pytest.fixture
def context() -> InvocationContext:
    return InvocationContext(command="dump pdf")


class TestDumpPdfText:
    """DumpPdfTextのユニットテスト。"""

    async def test_extracts_pending_pdfs(
        self,
        snapshot: ConfigurationSnapshot,
        context: InvocationContext,
        make_pdf_bytes: Callable[..., bytes],
    ) -> None:
        (snapshot.paper_bin_dir / "10.1-a.pdf").write_bytes(make_pdf_bytes("Alpha"))
        (snapshot.paper_bin_dir / "10.1-b.pdf").write_bytes(make_pdf_bytes("Beta"))

        exit_code = await DumpPdfText()(snapshot, context, asyncio.Event())

        assert exit_code is None
        files = sorted(p.name for p in snapshot.pdf_data_dir.iterdir())
        assert files == ["10.1-a.pdf.json", "10.1-b.pdf.json"]
        data = PdfData.model_validate_json(
            (snapshot.pdf_data_dir / "10.1-a.pdf.json").read_text(encoding="utf-8")
        )
        assert "Alpha" in data.texts[0]

    async def test_skips_already_dumped(
        self,
        snapshot: ConfigurationSnapshot,
        context: InvocationContext,
        make_pdf_bytes: Callable[..., bytes],
    ) -> None:
        """抽出済みのPDFは再抽出されないことをテスト"""
        (snapshot.paper_bin_dir / "10.1-a.pdf").write_bytes(make_pdf_bytes("Alpha"))
        existing = snapshot.pdf_data_dir / "10.1-a.pdf.json"
        existing.write_text("previous", encoding="utf-8")

        exit_code = await DumpPdfText()(snapshot, context, asyncio.Event())

        assert exit_code is None
        assert existing.read_text(encoding="utf-8") == "previous"

    async def test_unreadable_pdf_is_skipped(
        self,
        snapshot: ConfigurationSnapshot,
        context: InvocationContext,
        make_pdf_bytes: Callable[..., bytes],
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        (snapshot.paper_bin_dir / "10.1-a.pdf").touch()
        (snapshot.paper_bin_dir / "10.1-b.pdf").write_bytes(make_pdf_bytes("Beta"))

        exit_code = await DumpPdfText()(snapshot, context, asyncio.Event())

        assert exit_code is None
        assert sorted(p.name for p in snapshot.pdf_data_dir.iterdir()) == ["10.1-b.pdf.json"]
        assert any(
            r.levelname == "WARNING" and "Can't extract 10.1-a.pdf" in r.getMessage()
            for r in caplog.records
        )

    async def test_cancelled(
        self,
        snapshot: ConfigurationSnapshot,
        context: InvocationContext,
        make_pdf_bytes: Callable[..., bytes],
    ) -> None:
        (snapshot.paper_bin_dir / "10.1-a.pdf").write_bytes(make_pdf_bytes("Alpha"))
        cancel = asyncio.Event()
        cancel.set()

        exit_code = await DumpPdfText()(snapshot, context, cancel)

        assert exit_code == EXIT_CANCELLED
        assert list(snapshot.pdf_data_dir.iterdir()) == []
