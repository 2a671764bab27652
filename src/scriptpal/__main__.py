# -*- coding: utf-8 -*-
"""
scriptpal/__main__.py

目的：
- 支持 `python -m scriptpal` 这种启动方式。
- 直接转发到 cli.main()，退出码由它决定。
"""

from .cli import main

if __name__ == "__main__":
	raise SystemExit(main())
