# -*- coding: utf-8 -*-
"""
scripts/convert_plain_script.py

这个脚本做什么：
- 把“纯文本剧本”（HEADER: / SPEAKER: / DIALOG: / ACTION: / DIRECTIONS: 前缀，'---' 分页）
  转成标签行标记（<header>...</header> 每行一个），写进 ScriptPack 的 script.txt。
- 同时写 meta.json（title/description），便于直接跑 `scriptpal continue`。

使用示例：
python scripts/convert_plain_script.py \
  --in_path drafts/pilot.txt \
  --script_dir output/pilot \
  --title "Pilot"

注意：
- 默认拒绝覆盖已有 script.txt（正文是作者的东西），需要时加 --overwrite。
- 输入必须是 UTF-8。
"""

from __future__ import annotations

import argparse
import json
from pathlib import Path

from scriptpal.core.io import script_paths
from scriptpal.core.plaintext import parse_plain_script
from scriptpal.core.schemas import lines_to_markup


def main() -> None:
	ap = argparse.ArgumentParser()
	ap.add_argument("--in_path", required=True, help="纯文本剧本路径（UTF-8）")
	ap.add_argument("--script_dir", required=True, help="输出 ScriptPack 目录")
	ap.add_argument("--title", default="", help="剧本标题（写入 meta.json）")
	ap.add_argument("--description", default="", help="剧本简介（写入 meta.json）")
	ap.add_argument("--overwrite", action="store_true", help="允许覆盖已存在的 script.txt")
	args = ap.parse_args()

	in_path = Path(args.in_path)
	if not in_path.exists():
		raise SystemExit(f"Input not found: {in_path}")

	paths = script_paths(args.script_dir)
	if paths.script.exists() and paths.script.read_text(encoding="utf-8").strip() and not args.overwrite:
		raise SystemExit(f"Refuse to overwrite existing file: {paths.script} (use --overwrite)")

	paths.ensure_dirs()

	lines = parse_plain_script(in_path.read_text(encoding="utf-8"))
	paths.script.write_text(lines_to_markup(lines) + "\n", encoding="utf-8")

	meta = {"title": args.title or in_path.stem, "description": args.description}
	paths.meta.write_text(json.dumps(meta, ensure_ascii=False, indent=2), encoding="utf-8")

	counts: dict[str, int] = {}
	for line in lines:
		counts[line.tag.value] = counts.get(line.tag.value, 0) + 1
	summary = " ".join(f"{k}={v}" for k, v in sorted(counts.items()))

	print(f"OK: {in_path} -> {paths.script} ({len(lines)} lines; {summary})")


if __name__ == "__main__":
	main()
