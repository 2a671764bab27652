# -*- coding: utf-8 -*-
"""core 层共享契约：剧本行与文档快照。"""

from .line import (
	Tag,
	TaggedLine,
	DocumentContext,
	VALID_TAGS,
	to_markup,
	lines_to_markup,
)

__all__ = [
	"Tag",
	"TaggedLine",
	"DocumentContext",
	"VALID_TAGS",
	"to_markup",
	"lines_to_markup",
]
