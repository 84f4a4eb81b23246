# tools.py
"""
JSON-RPC 2.0 tool server so other programs (editors, agents) can drive the
engine over stdio.

Each tool returns MCP-style content:

    {"content": [{"type": "text", "text": "..."}], "isError": false}

Runs triggered here always use a response sink on an in-memory buffer, so
subprocess output never leaks onto the protocol stream.
"""

from __future__ import annotations

import io
import json
from typing import Any, Callable, Dict, List, Optional, TextIO, Union

import pydantic
import yaml
from pydantic import BaseModel, Field

from . import __version__
from .document import collect_errors
from .engine import Executor, execute
from .errors import RunFromYAMLError
from .generator import explain_document, generate_document, to_yaml
from .model import OutputType

PROTOCOL_VERSION = "2024-11-05"

PARSE_ERROR = -32700
INVALID_REQUEST = -32600
METHOD_NOT_FOUND = -32601
INVALID_PARAMS = -32602


# -------------------- Schemas --------------------

class RpcRequest(BaseModel):
    jsonrpc: str = "2.0"
    id: Union[int, str, None] = None
    method: str
    params: Dict[str, Any] = Field(default_factory=dict)


class ToolCall(BaseModel):
    name: str
    arguments: Dict[str, Any] = Field(default_factory=dict)


class YamlArgs(BaseModel):
    yaml_content: str


class DescriptionArgs(BaseModel):
    description: str


class GenerateAndExecuteArgs(BaseModel):
    description: str
    dry_run: bool = False


def _schema(properties: Dict[str, Any], required: List[str]) -> Dict[str, Any]:
    return {"type": "object", "properties": properties, "required": required}


_YAML_PROP = {"yaml_content": {"type": "string", "description": "YAML workflow document"}}
_DESC_PROP = {"description": {"type": "string", "description": "Natural language description of the workflow"}}

TOOLS: List[Dict[str, Any]] = [
    {
        "name": "execute_existing_workflow",
        "description": "Execute an existing YAML workflow",
        "inputSchema": _schema(_YAML_PROP, ["yaml_content"]),
    },
    {
        "name": "generate_and_execute_workflow",
        "description": "Generate workflow from natural language description and execute it",
        "inputSchema": _schema(
            {**_DESC_PROP, "dry_run": {"type": "boolean", "description": "Only generate, do not execute"}},
            ["description"],
        ),
    },
    {
        "name": "generate_workflow",
        "description": "Generate workflow YAML from natural language description without executing",
        "inputSchema": _schema(_DESC_PROP, ["description"]),
    },
    {
        "name": "validate_workflow",
        "description": "Validate workflow YAML structure and syntax",
        "inputSchema": _schema(_YAML_PROP, ["yaml_content"]),
    },
    {
        "name": "explain_workflow",
        "description": "Explain what a workflow will do without executing it",
        "inputSchema": _schema(_YAML_PROP, ["yaml_content"]),
    },
]


class InvalidParams(Exception):
    pass


def _text(*parts: str, is_error: bool = False) -> Dict[str, Any]:
    return {"content": [{"type": "text", "text": p} for p in parts], "isError": is_error}


class ToolServer:
    def __init__(self, debug: bool = False, executor_factory: Optional[Callable[[], Executor]] = None):
        self.debug = debug
        self.executor_factory = executor_factory
        self._tools: Dict[str, Callable[[Dict[str, Any]], Dict[str, Any]]] = {
            "execute_existing_workflow": self._execute_existing,
            "generate_and_execute_workflow": self._generate_and_execute,
            "generate_workflow": self._generate,
            "validate_workflow": self._validate,
            "explain_workflow": self._explain,
        }

    # -------------------- Protocol --------------------

    def handle_message(self, text: str) -> Optional[str]:
        """Handle one JSON-RPC message. Returns the response line, or None for notifications."""
        try:
            raw = json.loads(text)
        except json.JSONDecodeError as e:
            return self._error(None, PARSE_ERROR, f"Parse error: {e}")

        try:
            req = RpcRequest.model_validate(raw)
        except pydantic.ValidationError as e:
            msg_id = raw.get("id") if isinstance(raw, dict) else None
            return self._error(msg_id, INVALID_REQUEST, f"Invalid request: {e.errors()[0]['msg']}")

        if "id" not in req.model_fields_set:
            return None

        handlers = {
            "initialize": self._initialize,
            "tools/list": self._tools_list,
            "tools/call": self._tools_call,
        }
        handler = handlers.get(req.method)
        if handler is None:
            return self._error(req.id, METHOD_NOT_FOUND, f"Method not found: {req.method}")

        try:
            result = handler(req.params)
        except InvalidParams as e:
            return self._error(req.id, INVALID_PARAMS, f"Invalid params: {e}")
        return json.dumps({"jsonrpc": "2.0", "id": req.id, "result": result})

    @staticmethod
    def _error(msg_id: Any, code: int, message: str) -> str:
        return json.dumps({"jsonrpc": "2.0", "id": msg_id, "error": {"code": code, "message": message}})

    def _initialize(self, params: Dict[str, Any]) -> Dict[str, Any]:
        return {
            "protocolVersion": PROTOCOL_VERSION,
            "capabilities": {"tools": {"listChanged": False}},
            "serverInfo": {"name": "runfromyaml", "version": __version__},
        }

    def _tools_list(self, params: Dict[str, Any]) -> Dict[str, Any]:
        return {"tools": TOOLS}

    def _tools_call(self, params: Dict[str, Any]) -> Dict[str, Any]:
        try:
            call = ToolCall.model_validate(params)
        except pydantic.ValidationError as e:
            raise InvalidParams(e.errors()[0]["msg"]) from e
        tool = self._tools.get(call.name)
        if tool is None:
            raise InvalidParams(f"unknown tool '{call.name}'")
        return tool(call.arguments)

    @staticmethod
    def _args(model: type[BaseModel], arguments: Dict[str, Any]) -> Any:
        try:
            return model.model_validate(arguments)
        except pydantic.ValidationError as e:
            raise InvalidParams(str(e)) from e

    # -------------------- Tools --------------------

    def _run(self, yaml_content: str) -> Dict[str, Any]:
        buf = io.StringIO()
        executor = self.executor_factory() if self.executor_factory else None
        try:
            report = execute(
                yaml_content,
                self.debug,
                output=OutputType.REST,
                stream=buf,
                executor=executor,
            )
        except RunFromYAMLError as e:
            return _text(f"Workflow rejected: {e}", is_error=True)

        status = "completed" if report.ok else f"completed with {len(report.failed)} failed operation(s)"
        return _text(f"Workflow {status}.", buf.getvalue(), is_error=not report.ok)

    def _execute_existing(self, arguments: Dict[str, Any]) -> Dict[str, Any]:
        args = self._args(YamlArgs, arguments)
        return self._run(args.yaml_content)

    def _generate_and_execute(self, arguments: Dict[str, Any]) -> Dict[str, Any]:
        args = self._args(GenerateAndExecuteArgs, arguments)
        content = to_yaml(generate_document(args.description))
        generated = f"Generated workflow:\n```yaml\n{content}```"
        if args.dry_run:
            return _text(generated, "Dry run: workflow was not executed.")
        result = self._run(content)
        result["content"].insert(0, {"type": "text", "text": generated})
        return result

    def _generate(self, arguments: Dict[str, Any]) -> Dict[str, Any]:
        args = self._args(DescriptionArgs, arguments)
        content = to_yaml(generate_document(args.description))
        return _text(f"Generated workflow for: {args.description}", f"```yaml\n{content}```")

    def _validate(self, arguments: Dict[str, Any]) -> Dict[str, Any]:
        args = self._args(YamlArgs, arguments)
        errors = collect_errors(args.yaml_content)
        if errors:
            return _text("Workflow validation failed:\n" + "\n".join(f"- {e}" for e in errors), is_error=True)
        return _text("Workflow is valid.")

    def _explain(self, arguments: Dict[str, Any]) -> Dict[str, Any]:
        args = self._args(YamlArgs, arguments)
        try:
            raw = yaml.safe_load(args.yaml_content)
        except yaml.YAMLError as e:
            return _text(f"Error parsing YAML: {e}", is_error=True)
        if not isinstance(raw, dict):
            return _text("Error parsing YAML: document must be a mapping", is_error=True)
        return _text(explain_document(raw))


def serve_stdio(stdin: TextIO, stdout: TextIO, server: Optional[ToolServer] = None) -> None:
    """Line-delimited JSON-RPC loop until stdin closes."""
    server = server or ToolServer()
    for line in stdin:
        line = line.strip()
        if not line:
            continue
        response = server.handle_message(line)
        if response is not None:
            stdout.write(response + "\n")
            stdout.flush()
