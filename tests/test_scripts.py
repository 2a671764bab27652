# -*- coding: utf-8 -*-
"""Scripts 集成测试。"""

from __future__ import annotations

import json
import os
import subprocess
import sys
from pathlib import Path

from scriptpal.core.io import get_document_context
from scriptpal.core.schemas import Tag


ROOT = Path(__file__).resolve().parent.parent


def _run(*args: str) -> subprocess.CompletedProcess:
	return subprocess.run(
		[sys.executable, "scripts/convert_plain_script.py", *args],
		cwd=ROOT,
		env={**os.environ, "PYTHONPATH": str(ROOT / "src")},
		capture_output=True,
		text=True,
	)


def test_convert_plain_script(tmp_path: Path):
	"""纯文本剧本 -> ScriptPack（script.txt + meta.json）。"""
	in_file = tmp_path / "pilot.txt"
	in_file.write_text(
		"HEADER: INT. DINER - NIGHT\n"
		"Neon hums over empty booths.\n"
		"SPEAKER: ROSA\n"
		"DIRECTIONS: (without looking up)\n"
		"DIALOG: We're closed.\n"
		"---\n"
		"HEADER: EXT. PARKING LOT - CONTINUOUS\n",
		encoding="utf-8",
	)
	pack = tmp_path / "pilot"

	result = _run("--in_path", str(in_file), "--script_dir", str(pack), "--description", "Late shift")
	assert result.returncode == 0, result.stderr
	assert "7 lines" in result.stdout

	ctx = get_document_context(pack)
	assert [l.tag for l in ctx.lines] == [
		Tag.HEADER, Tag.ACTION, Tag.SPEAKER, Tag.DIRECTIONS, Tag.DIALOG, Tag.CHAPTER_BREAK, Tag.HEADER,
	]
	assert ctx.title == "pilot"
	assert ctx.description == "Late shift"

	meta = json.loads((pack / "meta.json").read_text(encoding="utf-8"))
	assert meta["title"] == "pilot"


def test_convert_refuses_overwrite(tmp_path: Path):
	in_file = tmp_path / "draft.txt"
	in_file.write_text("ACTION: Snow falls.\n", encoding="utf-8")
	pack = tmp_path / "pack"
	pack.mkdir()
	(pack / "script.txt").write_text("<action>Existing.</action>\n", encoding="utf-8")

	result = _run("--in_path", str(in_file), "--script_dir", str(pack))
	assert result.returncode != 0
	assert (pack / "script.txt").read_text(encoding="utf-8") == "<action>Existing.</action>\n"

	result = _run("--in_path", str(in_file), "--script_dir", str(pack), "--overwrite", "--title", "Snow")
	assert result.returncode == 0, result.stderr
	assert get_document_context(pack).lines[0].text == "Snow falls."
