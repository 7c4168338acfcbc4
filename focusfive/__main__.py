# focusfive/__main__.py
# `python -m focusfive` entry point

from .cli import main

raise SystemExit(main())
