"""Shared helpers for plugin runtime tests."""

import json
import os
import textwrap
from pathlib import Path

import pytest

from plugin_runtime.core.envelope import Envelope, WindowContext
from plugin_runtime.core.ids import gen_id


def write_plugin(
    plugin_dir: Path,
    source: str,
    name: str | None = "test-plugin",
    version: str | None = "1.0.0",
    descriptor: str | None = None,
) -> Path:
    """Create a plugin directory with package.json and build/index.py."""
    plugin_dir.mkdir(parents=True, exist_ok=True)
    if descriptor is None:
        data = {}
        if name is not None:
            data["name"] = name
        if version is not None:
            data["version"] = version
        descriptor = json.dumps(data)
    (plugin_dir / "package.json").write_text(descriptor, encoding="utf-8")
    build = plugin_dir / "build"
    build.mkdir(exist_ok=True)
    (build / "index.py").write_text(textwrap.dedent(source), encoding="utf-8")
    return plugin_dir


def rewrite_entry(plugin_dir: Path, source: str, bump_seconds: int = 5) -> Path:
    """Replace the entry file and push its mtime forward."""
    entry = plugin_dir / "build" / "index.py"
    before = entry.stat().st_mtime_ns
    entry.write_text(textwrap.dedent(source), encoding="utf-8")
    later = before + bump_seconds * 1_000_000_000
    os.utime(entry, ns=(later, later))
    return entry


def make_request(
    kind: str,
    plugin_ref_id: str = "ref-1",
    window_context: WindowContext | None = None,
    **fields,
) -> Envelope:
    return Envelope(
        id=gen_id(),
        reply_id=None,
        plugin_ref_id=plugin_ref_id,
        plugin_name="test-plugin",
        window_context=window_context or WindowContext.none(),
        payload={"type": kind, **fields},
    )


def make_reply(request: Envelope, kind: str, **fields) -> Envelope:
    return Envelope(
        id=gen_id(),
        reply_id=request.id,
        plugin_ref_id=request.plugin_ref_id,
        plugin_name=request.plugin_name,
        window_context=request.window_context,
        payload={"type": kind, **fields},
    )


FULL_PLUGIN = '''
import json

calls = []


def on_import(ctx, args):
    if not args["text"].startswith("{"):
        return None
    return {"resources": {"workspaces": [{"id": "wk_1", "model": "workspace", "name": "W"}]}}


def on_filter(ctx, args):
    data = json.loads(args["payload"])
    for key in args["filter"].removeprefix("$.").split("."):
        data = data[key]
    return {"filtered": json.dumps(data)}


async def upper(ctx, args):
    return str(args["values"]["value"]).upper()


def join_args(ctx, args):
    values = args["values"]
    return f"{values['first']}-{values['second']}-{values['third']}"


def explode(ctx, args):
    raise ValueError("boom")


async def on_apply(ctx, request):
    values = request["values"]
    return {"setHeaders": [{"name": "Authorization", "value": f"{values['scheme']} {values['token']}"}]}


async def dynamic_token(ctx, request):
    return {"label": "Token for " + str(request.get("contextId"))}


def on_select(ctx, args):
    calls.append(("http", args))


def on_grpc_select(ctx, args):
    calls.append(("grpc", args))


def on_auth_select(ctx, args):
    calls.append(("auth", args))


plugin = {
    "importer": {"name": "json-importer", "on_import": on_import},
    "filter": {"name": "jsonpath", "on_filter": on_filter},
    "authentication": {
        "name": "bearer",
        "label": "Bearer Token",
        "shortLabel": "Bearer",
        "args": [
            {"type": "text", "name": "token", "dynamic": dynamic_token},
            {
                "type": "accordion",
                "inputs": [{"type": "text", "name": "scheme", "defaultValue": "Bearer"}],
            },
        ],
        "on_apply": on_apply,
        "actions": [{"label": "Clear token", "on_select": on_auth_select}],
    },
    "http_request_actions": [
        {"label": "Copy as cURL", "icon": "copy", "on_select": on_select},
    ],
    "grpc_request_actions": [
        {"label": "Copy as grpcurl", "on_select": on_grpc_select},
    ],
    "template_functions": [
        {
            "name": "upper",
            "args": [{"type": "text", "name": "value", "defaultValue": "fallback"}],
            "on_render": upper,
        },
        {
            "name": "join",
            "args": [
                {"type": "text", "name": "first", "defaultValue": "a"},
                {
                    "type": "h_stack",
                    "inputs": [
                        {"type": "text", "name": "second", "defaultValue": "b"},
                        {
                            "type": "accordion",
                            "inputs": [{"type": "text", "name": "third", "defaultValue": "c"}],
                        },
                    ],
                },
            ],
            "on_render": join_args,
        },
        {
            "name": "pick",
            "args": [
                {
                    "type": "select",
                    "name": "algorithm",
                    "options": [{"name": "SHA-1", "value": "sha1"}, {"label": "MD5", "value": "md5"}],
                    "defaultValue": "sha1",
                },
            ],
            "on_render": upper,
        },
        {"name": "explode", "args": [], "on_render": explode},
    ],
}
'''


@pytest.fixture
def full_plugin_dir(tmp_path):
    return write_plugin(tmp_path / "full-plugin", FULL_PLUGIN, name="x", version="1.0.0")


@pytest.fixture
def empty_plugin_dir(tmp_path):
    return write_plugin(tmp_path / "empty-plugin", "plugin = {}\n")
