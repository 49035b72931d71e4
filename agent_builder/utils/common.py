#!/usr/bin/env python3
"""
Common utilities for the agent builder CLI and server.
"""
import json
from pathlib import Path
from typing import Any


def print_section(title: str, width: int = 60):
    """Print a formatted section header"""
    print("\n" + "=" * width)
    if title:
        print(title)
        print("=" * width)
    else:
        print("=" * width)


def truncate(text: Any, limit: int = 80) -> str:
    """Shorten text to one line of at most ``limit`` characters"""
    line = " ".join(str(text).split())
    if len(line) <= limit:
        return line
    return line[:limit - 3] + "..."


def save_json(data: Any, path: Path, indent: int = 2):
    """Save data as JSON file"""
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, 'w', encoding='utf-8') as f:
        json.dump(data, f, indent=indent, ensure_ascii=False, default=str)


def load_json(path: Path) -> Any:
    """Load JSON file"""
    with open(path, 'r', encoding='utf-8') as f:
        return json.load(f)
