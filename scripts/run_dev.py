#!/usr/bin/env python3
"""
Development runner for the Mallard SQL assistant.

Loads .env from the project root, turns on debug logging unless
APP__LOG_LEVEL is already set, and starts the interactive session.
Command-line arguments are passed through to mallard.
"""

import os
import sys
from pathlib import Path

# Add the src directory to the Python path
project_root = Path(__file__).parent.parent
src_path = project_root / "src"
sys.path.insert(0, str(src_path))

# Load environment variables
from dotenv import load_dotenv

env_file = project_root / ".env"
if env_file.exists():
    load_dotenv(env_file)
    print(f"✓ Loaded environment variables from {env_file}")
else:
    print(f"⚠ No .env file found at {env_file}")
    print("  LLM__OPENROUTER_API_KEY must be set in the environment")

os.environ.setdefault("APP__LOG_LEVEL", "DEBUG")

if __name__ == "__main__":
    from mallard.main import main

    sys.exit(main(sys.argv[1:]))
