"""
Relay to an OpenAI-compatible chat-completion endpoint.

The API key stays on the server; the browser only ever sees the
assistant's reply text.
"""
import json
import urllib.error
import urllib.request

from flask import current_app

SYSTEM_PROMPT = """You are a helpful AI shopping assistant for BMS Store, a fashion e-commerce store.

You can help customers with:
1. Product recommendations based on their preferences, occasion, budget and style
2. Registering complaints about products or orders (collect the order number, the product and a description of the issue)
3. Searching for products by describing what they are looking for
4. General shopping help: sizes, orders, shipping, returns and offers

Be friendly, concise and helpful. When a customer wants to register a complaint,
ask for the order number, the product and a short description of the problem, and
tell them they can attach photos. Prices are in Indian Rupees (₹)."""


class AIGatewayError(Exception):
    """Upstream call could not produce a reply."""


def build_messages(message: str, history=None, image_data: str | None = None) -> list[dict]:
    messages = [{"role": "system", "content": SYSTEM_PROMPT}]
    for item in history or []:
        if not isinstance(item, dict):
            continue
        role = item.get("role")
        content = item.get("content")
        if role in ("user", "assistant") and content:
            messages.append({"role": role, "content": content})

    if image_data:
        messages.append({
            "role": "user",
            "content": [
                {"type": "text", "text": message or ""},
                {"type": "image_url", "image_url": {"url": image_data}},
            ],
        })
    else:
        messages.append({"role": "user", "content": message or ""})
    return messages


def _post_json(url: str, payload: dict, headers: dict, timeout: int) -> dict:
    req = urllib.request.Request(
        url,
        data=json.dumps(payload).encode("utf-8"),
        headers={"Content-Type": "application/json", **headers},
        method="POST",
    )
    with urllib.request.urlopen(req, timeout=timeout) as resp:
        return json.loads(resp.read().decode("utf-8"))


def chat_completion(messages: list[dict]) -> str:
    cfg = current_app.config
    api_key = cfg.get("AI_GATEWAY_API_KEY")
    if not api_key:
        raise AIGatewayError("AI_GATEWAY_API_KEY is not configured")

    payload = {"model": cfg.get("AI_MODEL", "google/gemini-2.5-flash"), "messages": messages}
    try:
        data = _post_json(
            cfg["AI_GATEWAY_URL"],
            payload,
            {"Authorization": f"Bearer {api_key}"},
            int(cfg.get("AI_TIMEOUT", 30)),
        )
    except urllib.error.HTTPError as e:
        current_app.logger.warning("AI gateway returned HTTP %s", e.code)
        if e.code == 429:
            raise AIGatewayError("Rate limits exceeded, please try again later.") from e
        if e.code == 402:
            raise AIGatewayError("Payment required, please add funds to the AI workspace.") from e
        raise AIGatewayError(f"AI gateway error: {e.code}") from e
    except (urllib.error.URLError, OSError) as e:
        raise AIGatewayError(f"AI gateway unreachable: {e}") from e
    except ValueError as e:
        raise AIGatewayError("AI gateway returned invalid JSON") from e

    try:
        return data["choices"][0]["message"]["content"]
    except (KeyError, IndexError, TypeError) as e:
        raise AIGatewayError("AI gateway returned an unexpected response") from e
