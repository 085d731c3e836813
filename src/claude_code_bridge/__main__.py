"""claude-code-bridge entry point.

Supports: python -m claude_code_bridge
"""

import sys

from .app import main

if __name__ == "__main__":
    sys.exit(main())
