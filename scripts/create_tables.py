#!/usr/bin/env python
"""Create the agentcloud API database tables without running migrations."""

import os
import sys

sys.path.append(os.path.join(os.path.dirname(__file__), "..", "src"))

from agentcloudapi.db import init_db

if __name__ == "__main__":
    init_db()
