"""Tests for page counting and single-page rasterization."""

from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Any
from unittest.mock import MagicMock, patch

import pytest
from pdf2image.exceptions import (
    PDFInfoNotInstalledError,
    PDFPageCountError,
    PDFPopplerTimeoutError,
)

from src.ocr.errors import PageCountUnavailable, RasterizationFailed
from src.ocr.pdf_handler import PageCounter, PageRasterizer


def _fake_convert(payload: bytes = b"\x89PNG fake") -> Any:
    """Build a convert_from_path stand-in that writes one image file."""

    def convert(pdf_path: str, **kwargs: Any) -> list[str]:
        out = Path(kwargs["output_folder"]) / f"{kwargs['output_file']}.png"
        out.write_bytes(payload)
        return [str(out)]

    return convert


class TestPageCounter:
    """Tests for the PageCounter class."""

    def test_init_defaults(self) -> None:
        counter = PageCounter()
        assert counter.poppler_path is None
        assert counter.timeout_s is None

    @patch("src.ocr.pdf_handler.pdfinfo_from_path")
    def test_count_pages(self, mock_info: MagicMock, sample_pdf: Path) -> None:
        mock_info.return_value = {"Title": "Quarterly statement", "Pages": 12}

        assert PageCounter().count_pages(sample_pdf) == 12
        assert mock_info.call_args.args[0] == str(sample_pdf)

    @pytest.mark.parametrize("count", [1, 7, 250])
    @patch("src.ocr.pdf_handler.pdfinfo_from_path")
    def test_returns_exact_count(
        self, mock_info: MagicMock, count: int, sample_pdf: Path
    ) -> None:
        mock_info.return_value = {"Pages": count}
        assert PageCounter().count_pages(sample_pdf) == count

    @patch("src.ocr.pdf_handler.pdfinfo_from_path")
    def test_poppler_path_and_timeout_passed(
        self, mock_info: MagicMock, sample_pdf: Path
    ) -> None:
        mock_info.return_value = {"Pages": 3}

        PageCounter(poppler_path="/opt/poppler/bin", timeout_s=5.0).count_pages(
            sample_pdf
        )

        assert mock_info.call_args.kwargs["poppler_path"] == "/opt/poppler/bin"
        assert mock_info.call_args.kwargs["timeout"] == 5.0

    def test_missing_document(self, tmp_path: Path) -> None:
        with pytest.raises(PageCountUnavailable, match="not found"):
            PageCounter().count_pages(tmp_path / "absent.pdf")

    @patch("src.ocr.pdf_handler.pdfinfo_from_path")
    def test_report_without_page_count(
        self, mock_info: MagicMock, sample_pdf: Path
    ) -> None:
        mock_info.side_effect = PDFPageCountError(
            "Unable to get page count.\nSyntax Error: Couldn't find trailer"
        )
        with pytest.raises(PageCountUnavailable, match="trailer") as exc_info:
            PageCounter().count_pages(sample_pdf)
        assert isinstance(exc_info.value.__cause__, PDFPageCountError)

    @patch("src.ocr.pdf_handler.pdfinfo_from_path")
    def test_tool_not_installed(self, mock_info: MagicMock, sample_pdf: Path) -> None:
        mock_info.side_effect = PDFInfoNotInstalledError("no pdfinfo")
        with pytest.raises(PageCountUnavailable, match="poppler"):
            PageCounter().count_pages(sample_pdf)

    @patch("src.ocr.pdf_handler.pdfinfo_from_path")
    def test_tool_timeout(self, mock_info: MagicMock, sample_pdf: Path) -> None:
        mock_info.side_effect = PDFPopplerTimeoutError("Run poppler timeout.")
        with pytest.raises(PageCountUnavailable, match="timed out"):
            PageCounter(timeout_s=0.5).count_pages(sample_pdf)

    @patch("src.ocr.pdf_handler.pdfinfo_from_path")
    def test_zero_pages(self, mock_info: MagicMock, sample_pdf: Path) -> None:
        mock_info.return_value = {"Pages": 0}
        with pytest.raises(PageCountUnavailable, match="0 pages"):
            PageCounter().count_pages(sample_pdf)


class TestPageRasterizer:
    """Tests for the PageRasterizer class."""

    def test_init_defaults(self) -> None:
        rasterizer = PageRasterizer()
        assert rasterizer.dpi == 300
        assert rasterizer.image_format == "png"
        assert rasterizer.use_pdftocairo is True

    @patch("src.ocr.pdf_handler.convert_from_path")
    def test_rasterize_single_page(
        self, mock_convert: MagicMock, sample_pdf: Path, tmp_path: Path
    ) -> None:
        mock_convert.side_effect = _fake_convert(b"page-bytes")
        scratch = tmp_path / "scratch"
        scratch.mkdir()
        rasterizer = PageRasterizer(dpi=150, temp_dir=scratch)

        data = rasterizer.rasterize(sample_pdf, 3)

        assert data == b"page-bytes"
        kwargs = mock_convert.call_args.kwargs
        assert kwargs["first_page"] == 3
        assert kwargs["last_page"] == 3
        assert kwargs["single_file"] is True
        assert kwargs["dpi"] == 150
        assert kwargs["use_pdftocairo"] is True

    @patch("src.ocr.pdf_handler.convert_from_path")
    def test_transient_files_removed_on_success(
        self, mock_convert: MagicMock, sample_pdf: Path, tmp_path: Path
    ) -> None:
        mock_convert.side_effect = _fake_convert()
        scratch = tmp_path / "scratch"
        scratch.mkdir()

        PageRasterizer(temp_dir=scratch).rasterize(sample_pdf, 1)

        assert list(scratch.iterdir()) == []

    @patch("src.ocr.pdf_handler.convert_from_path")
    def test_transient_files_removed_on_tool_failure(
        self, mock_convert: MagicMock, sample_pdf: Path, tmp_path: Path
    ) -> None:
        def crash(pdf_path: str, **kwargs: Any) -> list[str]:
            (Path(kwargs["output_folder"]) / "partial.png").write_bytes(b"half")
            raise RuntimeError("pdftocairo crashed")

        mock_convert.side_effect = crash
        scratch = tmp_path / "scratch"
        scratch.mkdir()

        with pytest.raises(RasterizationFailed, match="pdftocairo crashed"):
            PageRasterizer(temp_dir=scratch).rasterize(sample_pdf, 2)
        assert list(scratch.iterdir()) == []

    @patch("src.ocr.pdf_handler.convert_from_path")
    def test_no_output_file(
        self, mock_convert: MagicMock, sample_pdf: Path, tmp_path: Path
    ) -> None:
        mock_convert.return_value = []
        with pytest.raises(RasterizationFailed, match="no image"):
            PageRasterizer(temp_dir=tmp_path).rasterize(sample_pdf, 1)

    @patch("src.ocr.pdf_handler.convert_from_path")
    def test_unreadable_output_file(
        self, mock_convert: MagicMock, sample_pdf: Path, tmp_path: Path
    ) -> None:
        mock_convert.return_value = [str(tmp_path / "never-written.png")]
        with pytest.raises(RasterizationFailed, match="Could not read"):
            PageRasterizer(temp_dir=tmp_path).rasterize(sample_pdf, 1)

    @patch("src.ocr.pdf_handler.shutil.rmtree")
    @patch("src.ocr.pdf_handler.convert_from_path")
    def test_cleanup_failure_is_not_raised(
        self,
        mock_convert: MagicMock,
        mock_rmtree: MagicMock,
        sample_pdf: Path,
        tmp_path: Path,
    ) -> None:
        mock_convert.side_effect = _fake_convert(b"ok")
        mock_rmtree.side_effect = PermissionError("locked")

        assert PageRasterizer(temp_dir=tmp_path).rasterize(sample_pdf, 1) == b"ok"
        mock_rmtree.assert_called_once()

    def test_rejects_page_zero(self, sample_pdf: Path) -> None:
        with pytest.raises(ValueError):
            PageRasterizer().rasterize(sample_pdf, 0)

    @patch("src.ocr.pdf_handler.convert_from_path")
    def test_rapid_calls_use_distinct_paths(
        self, mock_convert: MagicMock, sample_pdf: Path, tmp_path: Path
    ) -> None:
        mock_convert.side_effect = _fake_convert()
        rasterizer = PageRasterizer(temp_dir=tmp_path)

        for _ in range(5):
            rasterizer.rasterize(sample_pdf, 1)

        folders = {c.kwargs["output_folder"] for c in mock_convert.call_args_list}
        names = {c.kwargs["output_file"] for c in mock_convert.call_args_list}
        assert len(folders) == 5
        assert len(names) == 5

    def test_transient_names_unique_across_threads(self) -> None:
        rasterizer = PageRasterizer()
        with ThreadPoolExecutor(max_workers=8) as executor:
            names = list(executor.map(rasterizer.transient_name, [1] * 200))
        assert len(set(names)) == 200

    def test_transient_name_includes_page_index(self) -> None:
        name = PageRasterizer().transient_name(42)
        assert "-0042-" in name
