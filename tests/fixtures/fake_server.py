"""Minimal MCP server speaking newline-delimited JSON-RPC over stdio.

Behaviour is selected with the FAKE_SERVER_MODE environment variable:

- ``normal``: serves the tools below
- ``no_tools``: announces an empty tool list
- ``exit_on_list``: exits when asked for the tool list
- ``bad_tools``: announces a tool without a name
"""

import json
import os
import sys

MODE = os.environ.get("FAKE_SERVER_MODE", "normal")

TOOLS = [
    {
        "name": "add",
        "description": "Add two numbers",
        "inputSchema": {
            "type": "object",
            "properties": {"a": {"type": "number"}, "b": {"type": "number"}},
            "required": ["a", "b"],
        },
    },
    {
        "name": "echo",
        "inputSchema": {"type": "object", "properties": {"message": {"type": "string"}}},
    },
    {"name": "fail", "description": "Always fails", "inputSchema": {"type": "object"}},
    {"name": "flaky", "description": "Reports a tool error", "inputSchema": {"type": "object"}},
]


def send(message):
    sys.stdout.write(json.dumps(message) + "\n")
    sys.stdout.flush()


def read():
    line = sys.stdin.readline()
    if not line:
        sys.exit(0)
    return json.loads(line)


def text(value):
    return {"content": [{"type": "text", "text": str(value)}], "isError": False}


def handle(request):
    method = request.get("method")
    params = request.get("params") or {}

    if method == "initialize":
        return {
            "protocolVersion": params.get("protocolVersion"),
            "capabilities": {"tools": {}},
            "serverInfo": {"name": "fake-server", "version": "0.1.0"},
        }

    if method == "tools/list":
        if MODE == "exit_on_list":
            sys.exit(3)
        if MODE == "no_tools":
            return {"tools": []}
        if MODE == "bad_tools":
            return {"tools": [{"description": "nameless"}]}

        # Ask the client for a ping first; it must answer before we go on.
        send({"jsonrpc": "2.0", "id": "srv-1", "method": "ping"})
        reply = read()
        if reply.get("id") != "srv-1" or "result" not in reply:
            raise RuntimeError(f"bad ping reply: {reply}")
        return {"tools": TOOLS}

    if method == "tools/call":
        name = params.get("name")
        args = params.get("arguments") or {}
        send({"jsonrpc": "2.0", "method": "notifications/message", "params": {"data": f"calling {name}"}})
        if name == "add":
            return text(args["a"] + args["b"])
        if name == "echo":
            return text(args.get("message", ""))
        if name == "fail":
            raise RuntimeError("tool exploded")
        if name == "flaky":
            return {"content": [{"type": "text", "text": "upstream unavailable"}], "isError": True}
        raise KeyError(name)

    raise NotImplementedError(method)


def main():
    print("fake server starting")  # noise before the protocol starts
    sys.stdout.flush()
    while True:
        request = read()
        if "id" not in request:
            continue  # notification
        try:
            result = handle(request)
        except NotImplementedError as exc:
            send({"jsonrpc": "2.0", "id": request["id"], "error": {"code": -32601, "message": f"Method not found: {exc}"}})
        except Exception as exc:
            send({"jsonrpc": "2.0", "id": request["id"], "error": {"code": -32603, "message": str(exc)}})
        else:
            send({"jsonrpc": "2.0", "id": request["id"], "result": result})


if __name__ == "__main__":
    main()
