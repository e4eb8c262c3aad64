"""Tests for the local batch command."""

import logging

import pytest
from pypdf import PdfReader

import pdf_paginator.sequencer as sequencer
from pdf_paginator.cli import main, paginate_directory
from pdf_paginator.errors import MissingAsset


def _write_pages(root, make_png):
    (root / "1_cover.png").write_bytes(make_png(80, 120))
    (root / "chapter").mkdir()
    (root / "chapter" / "2_intro.png").write_bytes(make_png(300, 400))
    (root / "readme.txt").write_text("not a page")


def test_paginate_directory_writes_next_to_pages(tmp_path, make_png):
    _write_pages(tmp_path, make_png)

    path = paginate_directory("SAMPLE", tmp_path)

    assert path == tmp_path / "final_document.pdf"
    assert len(PdfReader(path).pages) == 2


def test_main_with_output_and_overrides(tmp_path, make_png):
    _write_pages(tmp_path, make_png)
    output = tmp_path / "out" / "book.pdf"

    exit_code = main(["SAMPLE", "--root", str(tmp_path), "--output", str(output), "--set", "layout.content_offset=10"])

    assert exit_code == 0
    assert len(PdfReader(output).pages) == 2


def test_main_without_pages_fails(tmp_path, caplog):
    with caplog.at_level(logging.ERROR):
        exit_code = main(["SAMPLE", "--root", str(tmp_path)])

    assert exit_code == 1
    assert "No numbered page files found" in caplog.text
    assert not (tmp_path / "final_document.pdf").exists()


def test_main_with_blank_title_fails(tmp_path, make_png):
    _write_pages(tmp_path, make_png)
    assert main(["  ", "--root", str(tmp_path)]) == 1


def test_main_with_bad_page_fails(tmp_path, make_png):
    _write_pages(tmp_path, make_png)
    (tmp_path / "3_broken.png").write_bytes(b"not a png")

    assert main(["SAMPLE", "--root", str(tmp_path)]) == 1
    assert not (tmp_path / "final_document.pdf").exists()


def test_missing_root_fails(tmp_path, caplog):
    with caplog.at_level(logging.ERROR):
        exit_code = main(["SAMPLE", "--root", str(tmp_path / "missing")])

    assert exit_code == 1
    assert "Directory not found" in caplog.text


def test_missing_template_fails_before_compositing(monkeypatch, tmp_path, make_png):
    calls = []
    monkeypatch.setattr(sequencer, "process_page", lambda *args, **kwargs: calls.append(args))
    _write_pages(tmp_path, make_png)

    with pytest.raises(MissingAsset) as excinfo:
        paginate_directory("SAMPLE", tmp_path, overrides={"assets": {"template": "missing.png"}})

    assert excinfo.value.path.endswith("missing.png")
    assert calls == []
    assert not (tmp_path / "final_document.pdf").exists()
