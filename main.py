"""
Entry point for the Notion to Memos migration tool.
"""

import sys

from notion2memos.cli import main

if __name__ == "__main__":
    sys.exit(main())
