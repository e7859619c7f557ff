from __future__ import annotations  # LLM request gateway for interview collaborators

import json
import logging
import os
import threading
from collections import defaultdict
from contextlib import nullcontext
from typing import Any, Callable, ContextManager, DefaultDict, Dict, List, Optional, Protocol, Sequence, Tuple, Type, TypeVar

import httpx
from langchain_core.messages import BaseMessage
from langchain_core.runnables import RunnableLambda
from pydantic import BaseModel, ValidationError

from config import LlmRoute


logger = logging.getLogger(__name__)  # Module logger setup

_ROUTE_LOCKS: DefaultDict[str, threading.Lock] = defaultdict(threading.Lock)  # One lock per sequential route
_ROUTE_LOCKS_GUARD = threading.Lock()
_ROLE_NAMES = {"human": "user", "ai": "assistant"}  # LangChain message types to chat roles
_PREVIEW_LIMIT = 120


class HttpClient(Protocol):  # Anything with an httpx-like post
    def post(self, url: str, *, json: Dict[str, Any], headers: Dict[str, str], timeout: float) -> "HttpResponse": ...


class HttpResponse(Protocol):  # Subset of httpx.Response used here
    @property
    def status_code(self) -> int: ...

    def json(self) -> Any: ...

    @property
    def text(self) -> str: ...


class LlmGatewayError(RuntimeError):  # Base gateway error
    pass


class LlmTransportError(LlmGatewayError):  # Network, status or envelope failure
    pass


class LlmOutputError(LlmGatewayError):  # Model content failed schema validation
    def __init__(self, message: str, *, content: str = "") -> None:
        super().__init__(message)
        self.content = content


T = TypeVar("T", bound=BaseModel)


def _route_guard(cfg: LlmRoute) -> ContextManager[Any]:  # Serialize calls on routes backed by a single local model
    if not cfg.sequential:
        return nullcontext()
    with _ROUTE_LOCKS_GUARD:
        return _ROUTE_LOCKS[cfg.name or cfg.base_url + cfg.endpoint]


def call(
    task: str,
    schema: Type[T],
    *,
    cfg: LlmRoute,
    client: Optional[HttpClient] = None,
    options: Optional[Dict[str, Any]] = None,
) -> T:  # Send a single-prompt task and validate the reply
    return chat([{"role": "user", "content": task}], schema, cfg=cfg, client=client, options=options)


def chat(
    messages: Sequence[Dict[str, str]],
    schema: Type[T],
    *,
    cfg: LlmRoute,
    client: Optional[HttpClient] = None,
    options: Optional[Dict[str, Any]] = None,
) -> T:  # One request per call; question-level retries belong to the flow engine
    outgoing = _schema_preamble(schema) if cfg.enforce_json else []
    outgoing += _normalize_messages(messages)
    payload = _build_payload(cfg, outgoing, options)
    logger.info("LLM request send route=%s model=%s preview=%s", cfg.name, cfg.model, _preview(outgoing))
    with _route_guard(cfg):
        content = _fetch_content(f"{cfg.base_url}{cfg.endpoint}", payload, _build_headers(cfg), cfg, client)
    try:
        parsed = _validate(schema, content)
    except (json.JSONDecodeError, ValidationError) as exc:
        logger.warning("LLM output validation failed route=%s: %s", cfg.name, exc)
        raise LlmOutputError("LLM output validation failed", content=content) from exc
    logger.info("LLM request done route=%s model=%s", cfg.name, cfg.model)
    return parsed


def runnable(route: LlmRoute, schema: Type[T]) -> RunnableLambda:  # Expose chat() as a LangChain runnable step
    def _invoke(payload: Any) -> T:
        return chat(_coerce_messages(payload), schema, cfg=route)

    return RunnableLambda(_invoke)


def _schema_preamble(schema: Type[BaseModel]) -> List[Dict[str, str]]:
    contract = json.dumps(schema.model_json_schema(), indent=2)
    return [{"role": "system", "content": f"Reply with a single JSON object matching this schema:\n{contract}"}]


def _fetch_content(
    url: str,
    payload: Dict[str, Any],
    headers: Dict[str, str],
    cfg: LlmRoute,
    client: Optional[HttpClient],
) -> str:  # POST once and pull the model text out of the envelope
    try:
        response, release = _post(url, payload, headers, cfg.timeout_s, client)
    except Exception as exc:  # noqa: BLE001
        logger.error("LLM transport failure route=%s: %s", cfg.name, exc)
        raise LlmTransportError("LLM transport failed") from exc
    try:
        if response.status_code >= 400:
            logger.error("LLM error status route=%s: %s", cfg.name, response.status_code)
            raise LlmTransportError(f"LLM returned status {response.status_code}")
        try:
            envelope = response.json()
        except Exception as exc:  # noqa: BLE001
            logger.error("Invalid JSON envelope from LLM route=%s: %s", cfg.name, exc)
            raise LlmTransportError("LLM payload was not JSON") from exc
        return _extract_content(envelope)
    finally:
        if release is not None:
            release()


def _build_payload(
    cfg: LlmRoute, messages: Sequence[Dict[str, str]], options: Optional[Dict[str, Any]]
) -> Dict[str, Any]:  # Compose request body for chat-style endpoints
    payload: Dict[str, Any] = {"model": cfg.model, "messages": list(messages), **cfg.extra_body, **(options or {})}
    if cfg.response_format:
        payload["response_format"] = {"type": cfg.response_format}
    return payload


def _build_headers(cfg: LlmRoute) -> Dict[str, str]:
    headers = {"Content-Type": "application/json"}
    api_key = os.getenv(cfg.api_key_env) if cfg.api_key_env else None
    if api_key:
        headers["Authorization"] = f"Bearer {api_key}"
    return {**headers, **cfg.extra_headers}


def _post(
    url: str,
    payload: Dict[str, Any],
    headers: Dict[str, str],
    timeout: float,
    client: Optional[HttpClient],
) -> Tuple[HttpResponse, Optional[Callable[[], None]]]:  # Returns the response and a release callback
    if client is None:
        owned = httpx.Client(timeout=timeout)
        try:
            return owned.post(url, json=payload, headers=headers), owned.close
        except Exception:
            owned.close()
            raise
    response = client.post(url, json=payload, headers=headers, timeout=timeout)
    release = getattr(client, "close", None)
    return response, release if callable(release) else None


def _normalize_messages(messages: Sequence[Dict[str, str]]) -> List[Dict[str, str]]:  # Keep role/content only
    normalized: List[Dict[str, str]] = []
    for message in messages:
        if not isinstance(message, dict):
            raise TypeError("Chat messages must be role/content dicts")
        role = str(message.get("role") or "").strip()
        if not role:
            raise ValueError("Chat message missing role")
        normalized.append({"role": role, "content": str(message.get("content", ""))})
    return normalized


def _preview(messages: Sequence[Dict[str, str]]) -> str:  # First line of the first non-system message
    first = next(
        (m["content"].strip() for m in messages if m["role"] != "system" and m["content"].strip()),
        "",
    )
    line = first.splitlines()[0] if first else ""
    return line if len(line) <= _PREVIEW_LIMIT else line[: _PREVIEW_LIMIT - 3] + "..."


def _extract_content(envelope: Any) -> str:  # OpenAI choices, Ollama chat message, Ollama generate response
    if not isinstance(envelope, dict):
        raise LlmTransportError("LLM response missing content")
    candidates: List[Any] = []
    choices = envelope.get("choices")
    if isinstance(choices, list) and choices and isinstance(choices[0], dict):
        candidates.append(choices[0].get("message"))
    candidates.append(envelope.get("message"))
    candidates = [item.get("content") if isinstance(item, dict) else None for item in candidates]
    candidates.extend([envelope.get("response"), envelope.get("content")])
    for candidate in candidates:
        if isinstance(candidate, str):
            return candidate
    raise LlmTransportError("LLM response missing content")


def _validate(schema: Type[T], content: str) -> T:  # Parse JSON content, then try the schema's raw adapter
    cleaned = _strip_code_fences(content)
    try:
        return schema.model_validate_json(cleaned)
    except (json.JSONDecodeError, ValidationError) as exc:
        adapter = getattr(schema, "from_raw_content", None)
        if not callable(adapter):
            raise
        try:
            return adapter(cleaned)  # type: ignore[return-value]
        except (TypeError, ValueError):
            logger.debug("Raw content adapter rejected reply for %s", schema.__name__)
        raise exc


def _strip_code_fences(content: str) -> str:  # Drop a ```lang ... ``` wrapper around model output
    text = content.strip()
    if not text.startswith("```"):
        return text
    body = text.split("\n", 1)[1] if "\n" in text else ""
    body = body.rstrip()
    if body.endswith("```"):
        body = body[:-3]
    return body.strip()


def _coerce_messages(payload: Any) -> List[Dict[str, str]]:  # Prompt values and BaseMessages to role/content dicts
    if hasattr(payload, "to_messages"):
        payload = payload.to_messages()
    items = [payload] if isinstance(payload, (dict, BaseMessage)) else payload
    if not isinstance(items, (list, tuple)):
        raise TypeError("Unsupported message payload for LLM runnable")
    if all(isinstance(item, dict) for item in items):
        return list(items)
    if all(isinstance(item, BaseMessage) for item in items):
        return [_message_dict(item) for item in items]
    raise TypeError("Unsupported message payload for LLM runnable")


def _message_dict(message: BaseMessage) -> Dict[str, str]:
    content = message.content if isinstance(message.content, str) else json.dumps(message.content)
    return {"role": _ROLE_NAMES.get(message.type, message.type), "content": content}
