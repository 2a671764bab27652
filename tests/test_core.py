# -*- coding: utf-8 -*-
"""Core 模块单元测试。"""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from scriptpal.core.io import get_document_context, parse_document_text, script_paths
from scriptpal.core.markup import clean_markup, has_markup, scan_tagged
from scriptpal.core.plaintext import parse_plain_script, standardize_lines
from scriptpal.core.schemas import DocumentContext, Tag, TaggedLine, VALID_TAGS, lines_to_markup, to_markup
from scriptpal.core.transitions import TRANSITIONS, rule_for, tag_name


class TestTaggedLine:
	def test_tag_coerced_from_string(self):
		line = TaggedLine("dialog", "Hello.")
		assert line.tag is Tag.DIALOG
		assert line.to_dict() == {"tag": "dialog", "text": "Hello."}

	def test_unknown_tag_rejected(self):
		with pytest.raises(ValueError):
			TaggedLine("narrator", "text")

	def test_empty_text_rejected(self):
		with pytest.raises(ValueError, match="empty text"):
			TaggedLine(Tag.ACTION, "   ")

	def test_chapter_break_has_no_text(self):
		line = TaggedLine(Tag.CHAPTER_BREAK, "ignored")
		assert line.text == ""

	def test_vocabulary_is_closed(self):
		assert VALID_TAGS == ("header", "action", "speaker", "dialog", "directions", "chapter-break")

	def test_markup_escapes_text(self):
		line = TaggedLine(Tag.ACTION, "Fish & chips <cold>")
		assert to_markup(line) == "<action>Fish &amp; chips &lt;cold&gt;</action>"

	def test_lines_to_markup_one_line_per_tag(self):
		lines = [TaggedLine(Tag.SPEAKER, "NICK"), TaggedLine(Tag.DIALOG, "Hi!"), TaggedLine(Tag.CHAPTER_BREAK)]
		assert lines_to_markup(lines) == (
			"<speaker>NICK</speaker>\n<dialog>Hi!</dialog>\n<chapter-break></chapter-break>"
		)

	def test_document_context_snapshot(self):
		ctx = DocumentContext(lines=[TaggedLine(Tag.HEADER, "INT. ROOM - DAY")], title="T")
		assert isinstance(ctx.lines, tuple)
		assert ctx.last_tag is Tag.HEADER
		assert len(ctx) == 1
		assert DocumentContext().last_tag is None


class TestTransitions:
	def test_every_tag_and_empty_has_rule(self):
		assert set(TRANSITIONS) == {None, *Tag}

	@pytest.mark.parametrize("key", [None, *Tag])
	def test_must_and_must_not_disjoint(self, key):
		rule = TRANSITIONS[key]
		assert rule.must_start_with
		assert not (rule.must_start_with & rule.must_not_start_with)

	def test_empty_document(self):
		rule = rule_for(None)
		assert rule.allows(Tag.HEADER)
		assert rule.allows(Tag.ACTION)
		assert rule.allows(Tag.SPEAKER)
		assert not rule.allows(Tag.DIALOG)
		assert not rule.allows(Tag.DIRECTIONS)
		assert not rule.allows(Tag.CHAPTER_BREAK)

	def test_after_speaker(self):
		rule = rule_for(Tag.SPEAKER)
		assert rule.allows(Tag.DIALOG)
		assert rule.allows(Tag.DIRECTIONS)
		assert rule.directions_then_dialog
		for tag in (Tag.SPEAKER, Tag.HEADER, Tag.ACTION, Tag.CHAPTER_BREAK):
			assert not rule.allows(tag)

	def test_after_directions_only_dialog(self):
		rule = rule_for(Tag.DIRECTIONS)
		assert [t for t in Tag if rule.allows(t)] == [Tag.DIALOG]

	def test_after_chapter_break_only_header(self):
		rule = rule_for(Tag.CHAPTER_BREAK)
		assert [t for t in Tag if rule.allows(t)] == [Tag.HEADER]

	def test_tag_name(self):
		assert tag_name(None) == "none"
		assert tag_name(Tag.CHAPTER_BREAK) == "chapter-break"


class TestPlaintext:
	def test_standardize_lines(self):
		assert standardize_lines("a\r\n\r\n  b  \rc\n") == ["a", "b", "c"]

	def test_prefixes_and_breaks(self):
		text = (
			"HEADER: INT. KITCHEN - NIGHT\n"
			"Rain hammers the window.\n"
			"SPEAKER: MAYA\n"
			"directions: (quietly)\n"
			"DIALOG: Did you hear that?\n"
			"----\n"
			"SPEAKER:\n"
		)
		lines = parse_plain_script(text)
		assert [l.tag for l in lines] == [
			Tag.HEADER, Tag.ACTION, Tag.SPEAKER, Tag.DIRECTIONS, Tag.DIALOG, Tag.CHAPTER_BREAK,
		]
		assert lines[0].text == "INT. KITCHEN - NIGHT"
		assert lines[3].text == "(quietly)"


class TestMarkup:
	def test_clean_markup(self):
		raw = '<?xml version="1.0"?>\r\n```xml\n<action>Go.</action>\n<chapter-break/>\n```'
		cleaned = clean_markup(raw)
		assert "<?xml" not in cleaned
		assert "```" not in cleaned
		assert "<chapter-break></chapter-break>" in cleaned

	def test_scan_tagged_collapses_and_unescapes(self):
		pairs = scan_tagged("<Dialog>Fish &amp;\n  chips</Dialog><note>x</note>")
		assert pairs == [("Dialog", "Fish & chips"), ("note", "x")]

	def test_has_markup(self):
		assert has_markup("<action>x</action>")
		assert not has_markup("just words")


class TestDocumentSource:
	def test_script_paths(self, tmp_path: Path):
		paths = script_paths(tmp_path / "pack")
		assert paths.script.name == "script.txt"
		assert paths.llm_log == tmp_path / "pack" / "logs" / "llm.jsonl"
		assert not paths.root.exists()
		paths.ensure_dirs()
		paths.ensure_dirs()
		assert paths.continuations_dir.is_dir()
		assert paths.logs_dir.is_dir()

	def test_reads_markup_and_meta(self, tmp_path: Path):
		(tmp_path / "script.txt").write_text(
			"<header>INT. LAB - NIGHT</header>\n<speaker>IVY</speaker>\n<dialog>It works.</dialog>\n<chapter-break/>\n",
			encoding="utf-8",
		)
		(tmp_path / "meta.json").write_text(json.dumps({"title": "Lab", "description": "A test"}), encoding="utf-8")

		before = sorted(p.name for p in tmp_path.iterdir())
		ctx = get_document_context(tmp_path)
		after = sorted(p.name for p in tmp_path.iterdir())

		assert [l.tag for l in ctx.lines] == [Tag.HEADER, Tag.SPEAKER, Tag.DIALOG, Tag.CHAPTER_BREAK]
		assert ctx.title == "Lab"
		assert ctx.description == "A test"
		assert before == after

	def test_plain_text_document(self, tmp_path: Path):
		(tmp_path / "script.txt").write_text("HEADER: EXT. PIER - DAY\nGulls circle.\n", encoding="utf-8")
		ctx = get_document_context(tmp_path)
		assert [l.tag for l in ctx.lines] == [Tag.HEADER, Tag.ACTION]
		assert ctx.title == ""

	def test_unknown_document_tag_becomes_action(self):
		lines = parse_document_text("<shot>Close on the door.</shot><action></action>")
		assert lines == [TaggedLine(Tag.ACTION, "Close on the door.")]

	def test_structured_document(self):
		text = json.dumps({"lines": [
			{"format": "speaker", "content": "BO"},
			{"tag": "dialog", "text": "Hey."},
			{"tag": "bogus", "text": "kept as action"},
			{"tag": "dialog", "text": ""},
		]})
		lines = parse_document_text(text)
		assert lines == [
			TaggedLine(Tag.SPEAKER, "BO"),
			TaggedLine(Tag.DIALOG, "Hey."),
			TaggedLine(Tag.ACTION, "kept as action"),
		]

	def test_structured_document_aliases(self, tmp_path: Path):
		(tmp_path / "script.txt").write_text(json.dumps([
			{"tag": "scene", "text": "INT. GARAGE - NIGHT"},
			{"tag": "Character", "text": "JO"},
			{"tag": "dialogue", "text": "Lights."},
			{"tag": "page_break"},
		]), encoding="utf-8")
		ctx = get_document_context(tmp_path)
		assert [l.tag for l in ctx.lines] == [Tag.HEADER, Tag.SPEAKER, Tag.DIALOG, Tag.CHAPTER_BREAK]
		assert ctx.last_tag is Tag.CHAPTER_BREAK

	def test_markup_document_aliases(self):
		lines = parse_document_text("<scene>INT. HALL</scene><dialogue>Hi.</dialogue>")
		assert lines == [TaggedLine(Tag.HEADER, "INT. HALL"), TaggedLine(Tag.DIALOG, "Hi.")]

	def test_empty_document(self, tmp_path: Path):
		(tmp_path / "script.txt").write_text("\n\n", encoding="utf-8")
		assert get_document_context(tmp_path).lines == ()

	def test_missing_script(self, tmp_path: Path):
		with pytest.raises(FileNotFoundError):
			get_document_context(tmp_path / "nope")
