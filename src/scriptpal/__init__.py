# -*- coding: utf-8 -*-
"""
scriptpal：让写作者请模型“就地续写”剧本，并保证结果是结构合法的标签行。
"""

__version__ = "0.1.0"
