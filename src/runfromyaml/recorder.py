# recorder.py
from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, List, TextIO

import yaml


def record_commands(stdin: TextIO, stdout: TextIO, prompt: str = "> ") -> List[str]:
    """Read commands line by line until `exit` or end of input. Blank lines are skipped."""
    stdout.write("Enter commands (type 'exit' to finish):\n")
    commands: List[str] = []
    while True:
        stdout.write(prompt)
        stdout.flush()
        line = stdin.readline()
        if not line:
            break
        line = line.strip()
        if line == "exit":
            break
        if line:
            commands.append(line)
    return commands


def commands_to_document(commands: List[str], shell_type: str = "bash") -> Dict[str, Any]:
    """One shell operation per recorded command, default logging."""
    cmd = [
        {
            "type": "shell",
            "name": f"command-{i}",
            "desc": f"Recorded {shell_type} command",
            "expandenv": True,
            "values": [c],
        }
        for i, c in enumerate(commands, start=1)
    ]
    return {
        "logging": [{"level": "info"}, {"output": "stdout"}],
        "cmd": cmd,
    }


def write_document(doc: Dict[str, Any], path: str | Path) -> Path:
    path = Path(path)
    path.write_text(yaml.safe_dump(doc, sort_keys=False, default_flow_style=False), encoding="utf-8")
    return path
