"""In-memory fake of the OpenCode server.

A small Starlette app that serves the routes the client and CLI use and
keeps sessions and messages in memory. Requests reach it through
httpx.ASGITransport, which buffers whole responses, so ``/event`` returns a
finite stream scripted from the server state at subscription time: the
reply to the next prompt in every known session, then ``session.idle``.
"""

from __future__ import annotations

import itertools
import json
import time
from typing import Any

from starlette.applications import Starlette
from starlette.requests import Request
from starlette.responses import JSONResponse, Response
from starlette.routing import Route


class FakeOpenCodeServer:
    """In-memory stand-in for ``opencode serve``.

    Attributes:
        reply_text: Text of the assistant reply to every prompt
        stream_parts: Emit the reply as part events; when False only
            ``session.idle`` is streamed and clients must read the message
        extra_events: Payloads appended to every event stream
        requests: ``(method, path)`` of every request received
    """

    def __init__(self) -> None:
        self.sessions: dict[str, dict[str, Any]] = {}
        self.messages: dict[str, list[dict[str, Any]]] = {}
        self.prompts: list[dict[str, Any]] = []
        self.requests: list[tuple[str, str]] = []
        self.reply_text = "Hello from OpenCode"
        self.stream_parts = True
        self.extra_events: list[dict[str, Any]] = []
        self._ids = itertools.count(1)
        self._pending: dict[str, tuple[str, str]] = {}

        self.app = Starlette(
            routes=[
                Route("/config", self.config, methods=["GET"]),
                Route("/event", self.event, methods=["GET"]),
                Route("/session", self.session_collection, methods=["GET", "POST"]),
                Route("/session/{session_id}", self.session_item, methods=["GET", "DELETE"]),
                Route(
                    "/session/{session_id}/message",
                    self.session_messages,
                    methods=["GET", "POST"],
                ),
                Route(
                    "/session/{session_id}/prompt_async", self.prompt_async, methods=["POST"]
                ),
            ]
        )

    def _next_id(self, prefix: str) -> str:
        return f"{prefix}_{next(self._ids)}"

    def _log(self, request: Request) -> None:
        self.requests.append((request.method, request.url.path))

    def _missing(self, session_id: str) -> JSONResponse:
        return JSONResponse({"message": f"Session not found: {session_id}"}, status_code=404)

    # Routes

    async def config(self, request: Request) -> Response:
        self._log(request)
        return JSONResponse({"model": "anthropic/claude-sonnet-4"})

    async def session_collection(self, request: Request) -> Response:
        self._log(request)
        if request.method == "GET":
            sessions = list(self.sessions.values())
            limit = request.query_params.get("limit")
            if limit is not None:
                sessions = sessions[: int(limit)]
            return JSONResponse(sessions)

        body = await request.json()
        now = time.time() * 1000
        session = {
            "id": self._next_id("ses"),
            "title": body.get("title") or "New session",
            "directory": request.query_params.get("directory"),
            "time": {"created": now, "updated": now},
        }
        if body.get("parentID"):
            session["parentID"] = body["parentID"]
        self.sessions[session["id"]] = session
        self.messages[session["id"]] = []
        return JSONResponse(session)

    async def session_item(self, request: Request) -> Response:
        self._log(request)
        session_id = request.path_params["session_id"]
        if session_id not in self.sessions:
            return self._missing(session_id)
        if request.method == "DELETE":
            del self.sessions[session_id]
            self.messages.pop(session_id, None)
            return JSONResponse(True)
        return JSONResponse(self.sessions[session_id])

    async def session_messages(self, request: Request) -> Response:
        self._log(request)
        session_id = request.path_params["session_id"]
        if session_id not in self.sessions:
            return self._missing(session_id)
        if request.method == "GET":
            messages = self.messages[session_id]
            limit = request.query_params.get("limit")
            if limit is not None:
                messages = messages[-int(limit) :]
            return JSONResponse(messages)

        reply = self._answer(session_id, await request.json())
        return JSONResponse(reply)

    async def prompt_async(self, request: Request) -> Response:
        self._log(request)
        session_id = request.path_params["session_id"]
        if session_id not in self.sessions:
            return self._missing(session_id)
        self._answer(session_id, await request.json())
        return Response(status_code=204)

    async def event(self, request: Request) -> Response:
        self._log(request)
        payloads: list[dict[str, Any]] = [{"type": "server.connected", "properties": {}}]
        for session_id in self.sessions:
            payloads.extend(self._script(session_id))
        payloads.extend(self.extra_events)
        body = "".join(f"data: {json.dumps(p)}\n\n" for p in payloads)
        return Response(body, media_type="text/event-stream")

    # Conversation

    def _message(
        self, session_id: str, message_id: str, role: str, text: str
    ) -> dict[str, Any]:
        return {
            "info": {
                "id": message_id,
                "sessionID": session_id,
                "role": role,
                "time": {"created": time.time() * 1000},
            },
            "parts": [
                {
                    "id": f"prt_{message_id}",
                    "sessionID": session_id,
                    "messageID": message_id,
                    "type": "text",
                    "text": text,
                }
            ],
        }

    def _message_ids(self, session_id: str) -> tuple[str, str]:
        if session_id not in self._pending:
            self._pending[session_id] = (self._next_id("msg"), self._next_id("msg"))
        return self._pending[session_id]

    def _answer(self, session_id: str, body: dict[str, Any]) -> dict[str, Any]:
        self.prompts.append({"sessionID": session_id, **body})
        user_id, assistant_id = self._message_ids(session_id)
        del self._pending[session_id]
        prompt = "".join(p.get("text", "") for p in body.get("parts", []))
        reply = self._message(session_id, assistant_id, "assistant", self.reply_text)
        self.messages[session_id].extend(
            [self._message(session_id, user_id, "user", prompt), reply]
        )
        return reply

    def _script(self, session_id: str) -> list[dict[str, Any]]:
        """Events for the next exchange in a session."""
        user_id, assistant_id = self._message_ids(session_id)
        user = self._message(session_id, user_id, "user", "(prompt)")
        events: list[dict[str, Any]] = [
            {"type": "message.updated", "properties": {"info": user["info"]}},
            {"type": "message.part.updated", "properties": {"part": user["parts"][0]}},
        ]
        if self.stream_parts:
            assistant = self._message(session_id, assistant_id, "assistant", "")
            events.append({"type": "message.updated", "properties": {"info": assistant["info"]}})
            part = assistant["parts"][0]
            text = ""
            for word in self.reply_text.split(" "):
                delta = word if not text else f" {word}"
                text += delta
                events.append(
                    {
                        "type": "message.part.updated",
                        "properties": {"part": {**part, "text": text}, "delta": delta},
                    }
                )
        events.append({"type": "session.idle", "properties": {"sessionID": session_id}})
        return events
