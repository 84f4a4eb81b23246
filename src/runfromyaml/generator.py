# generator.py
from __future__ import annotations

from typing import Any, Dict, List

import yaml

from .document import stringify

_DEFAULT_LOGGING = [{"level": "info"}, {"output": "stdout"}]

_TYPE_SUMMARY = {
    "exec": "Execute system commands directly",
    "shell": "Execute shell commands",
    "docker": "Run Docker container operations",
    "docker-compose": "Execute Docker Compose operations",
    "ssh": "Execute commands on remote server via SSH",
    "conf": "Create configuration file",
}


def _has(text: str, *words: str) -> bool:
    return any(w in text for w in words)


# ---------------------------------------------------------------------
# Blocks
# ---------------------------------------------------------------------

def _docker_compose_block(description: str) -> Dict[str, Any]:
    return {
        "type": "docker-compose",
        "name": "docker-compose-setup",
        "desc": f"Docker Compose setup based on: {description}",
        "expandenv": True,
        "dcoptions": ["-f", "docker-compose.yml"],
        "command": "up",
        "cmdoptions": ["-d"],
        "service": "",
        "values": [],
    }


def _docker_block(description: str) -> Dict[str, Any]:
    return {
        "type": "docker",
        "name": "docker-setup",
        "desc": f"Docker setup based on: {description}",
        "expandenv": True,
        "command": "run",
        "container": "alpine:latest",
        "values": ["echo 'Docker container started'", "uname -a"],
    }


def _database_blocks(description: str) -> List[Dict[str, Any]]:
    blocks: List[Dict[str, Any]] = []
    if "postgres" in description.lower():
        blocks.append({
            "type": "conf",
            "name": "postgres-config",
            "desc": "PostgreSQL configuration",
            "confdest": "./postgres.conf",
            "confperm": 0o644,
            "confdata": "# PostgreSQL Configuration\nport = 5432\nmax_connections = 100\n",
        })
    blocks.append({
        "type": "shell",
        "name": "database-setup",
        "desc": "Database setup commands",
        "expandenv": True,
        "values": ["echo 'Setting up database on $DB_HOST:$DB_PORT'"],
    })
    return blocks


def _web_app_blocks(description: str) -> List[Dict[str, Any]]:
    return [
        {
            "type": "conf",
            "name": "web-config",
            "desc": "Web application configuration",
            "confdest": "./app.conf",
            "confperm": 0o644,
            "confdata": "# Web Application Configuration\nport=8080\nhost=0.0.0.0\n",
        },
        {
            "type": "shell",
            "name": "web-app-setup",
            "desc": "Web application setup",
            "expandenv": True,
            "values": ["echo 'Setting up web application on port $APP_PORT'"],
        },
    ]


def _config_blocks(description: str) -> List[Dict[str, Any]]:
    return [{
        "type": "conf",
        "name": "generated-config",
        "desc": "Generated configuration file",
        "confdest": "./generated.conf",
        "confperm": 0o644,
        "confdata": f"# Generated Configuration\n# Based on: {description}\n",
    }]


def _ssh_blocks(description: str) -> List[Dict[str, Any]]:
    return [{
        "type": "ssh",
        "name": "ssh-operation",
        "desc": "SSH remote operation",
        "expandenv": True,
        "user": "$USER",
        "host": "localhost",
        "port": 22,
        "options": ["-o", "ConnectTimeout=5"],
        "values": ["echo 'SSH connection established'", "uname -a"],
    }]


def _generic_block(description: str) -> Dict[str, Any]:
    return {
        "type": "shell",
        "name": "generated-commands",
        "desc": f"Generated commands based on: {description}",
        "expandenv": True,
        "values": ["echo 'Executing generated workflow'"],
    }


def _env_entries(text: str) -> List[Dict[str, str]]:
    entries: List[Dict[str, str]] = []
    if "database" in text:
        entries.append({"key": "DB_HOST", "value": "localhost"})
        entries.append({"key": "DB_PORT", "value": "5432"})
    if _has(text, "web", "app"):
        entries.append({"key": "APP_PORT", "value": "8080"})
    return entries


# ---------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------

def generate_document(description: str) -> Dict[str, Any]:
    """
    Build a workflow document from a free-text description by keyword matching.

    Block order is fixed: docker, database, web app, config, ssh. A
    description that matches none of them gets one generic shell block.
    """
    text = description.lower()
    blocks: List[Dict[str, Any]] = []

    if "docker" in text:
        blocks.append(_docker_compose_block(description) if "compose" in text else _docker_block(description))
    if _has(text, "database", "postgres", "mysql"):
        blocks.extend(_database_blocks(description))
    if _has(text, "web", "app", "server"):
        blocks.extend(_web_app_blocks(description))
    if "config" in text:
        blocks.extend(_config_blocks(description))
    if _has(text, "ssh", "remote"):
        blocks.extend(_ssh_blocks(description))
    if not blocks:
        blocks.append(_generic_block(description))

    doc: Dict[str, Any] = {"logging": [dict(e) for e in _DEFAULT_LOGGING]}
    env = _env_entries(text)
    if env:
        doc["env"] = env
    doc["cmd"] = blocks
    return doc


def to_yaml(doc: Dict[str, Any]) -> str:
    return yaml.safe_dump(doc, sort_keys=False, default_flow_style=False)


def explain_document(doc: Dict[str, Any]) -> str:
    """Plain-language walk through a raw (parsed, not validated) document."""
    lines = ["This workflow will perform the following actions:", ""]

    env = doc.get("env") or []
    if isinstance(env, list) and env:
        lines.append("Environment Setup:")
        for entry in env:
            if isinstance(entry, dict):
                lines.append(f"   - Set {stringify(entry.get('key'))} = {stringify(entry.get('value'))}")
        lines.append("")

    cmd = doc.get("cmd") or []
    if isinstance(cmd, list):
        lines.append("Command Execution:")
        for i, block in enumerate(cmd, start=1):
            if not isinstance(block, dict):
                lines.append(f"{i}. (invalid block)")
                continue
            block_type = stringify(block.get("type"))
            lines.append(f"{i}. {stringify(block.get('name')) or '(unnamed)'} ({block_type})")
            if block.get("desc"):
                lines.append(f"   Description: {stringify(block['desc'])}")
            summary = _TYPE_SUMMARY.get(block_type)
            if summary:
                lines.append(f"   - {summary}")
            lines.append("")

    return "\n".join(lines)
