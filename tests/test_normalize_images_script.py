"""Tests for the local normalisation command."""

from __future__ import annotations

from pathlib import Path

import pytest
from PIL import Image

from scripts.normalize_images import main, unique_file_name


def test_unique_file_name_adds_counter() -> None:
    taken: set[str] = set()

    assert unique_file_name("house.jpg", taken) == "house.jpg"
    assert unique_file_name("house.jpg", taken) == "house-1.jpg"
    assert unique_file_name("HOUSE.jpg", taken) == "HOUSE-2.jpg"
    assert unique_file_name("garden.jpg", taken) == "garden.jpg"


def test_inputs_sharing_a_stem_are_all_written(
    monkeypatch: pytest.MonkeyPatch,
    tmp_path: Path,
    make_image,
    capsys: pytest.CaptureFixture[str],
) -> None:
    monkeypatch.chdir(tmp_path)
    (tmp_path / "a.png").write_bytes(make_image(40, 30, "PNG"))
    (tmp_path / "a.jpg").write_bytes(make_image(30, 40, "JPEG"))
    output = tmp_path / "out"

    exit_code = main([str(tmp_path / "a.png"), str(tmp_path / "a.jpg"), "--output", str(output)])

    assert exit_code == 0
    assert sorted(path.name for path in output.iterdir()) == ["a-1.jpg", "a.jpg"]
    sizes = set()
    for path in output.iterdir():
        with Image.open(path) as image:
            assert image.format == "JPEG"
            sizes.add(image.size)
    assert sizes == {(40, 30), (30, 40)}
    printed = capsys.readouterr().out
    assert str(output / "a-1.jpg") in printed


def test_rejections_set_exit_code(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.chdir(tmp_path)
    (tmp_path / "notes.jpg").write_bytes(b"not an image")

    assert main([str(tmp_path / "notes.jpg"), "--output", str(tmp_path / "out")]) == 1
    assert list((tmp_path / "out").iterdir()) == []
