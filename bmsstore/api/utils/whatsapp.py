import json
import re
import urllib.error
import urllib.parse
import urllib.request

from flask import current_app

GRAPH_API_URL = "https://graph.facebook.com/v19.0/{phone_number_id}/messages"


def normalize_phone(phone: str | None, country_code: str = "91") -> str:
    """Digits only, with the country code prefixed to bare 10-digit numbers."""
    digits = re.sub(r"\D", "", phone or "")
    if len(digits) == 10 and country_code:
        digits = f"{country_code}{digits}"
    return digits


def wa_link(phone: str | None, text: str, country_code: str = "91") -> str | None:
    """wa.me deep link that opens a chat with `text` prefilled."""
    digits = normalize_phone(phone, country_code)
    if not digits:
        return None
    return f"https://wa.me/{digits}?text={urllib.parse.quote(text)}"


def send_whatsapp_message(phone: str, text: str) -> bool:
    """
    Send a text through the WhatsApp Cloud API. Returns True/False.
    Needs WHATSAPP_TOKEN and WHATSAPP_PHONE_NUMBER_ID in config.
    """
    cfg = current_app.config
    token = cfg.get("WHATSAPP_TOKEN")
    phone_number_id = cfg.get("WHATSAPP_PHONE_NUMBER_ID")
    if not token or not phone_number_id:
        # not configured, callers fall back to wa.me links
        return False

    to = normalize_phone(phone, cfg.get("WHATSAPP_COUNTRY_CODE", "91"))
    if not to:
        return False

    payload = {
        "messaging_product": "whatsapp",
        "to": to,
        "type": "text",
        "text": {"preview_url": True, "body": text},
    }
    req = urllib.request.Request(
        GRAPH_API_URL.format(phone_number_id=phone_number_id),
        data=json.dumps(payload).encode("utf-8"),
        headers={"Authorization": f"Bearer {token}", "Content-Type": "application/json"},
        method="POST",
    )
    try:
        with urllib.request.urlopen(req, timeout=8) as resp:
            obj = json.loads(resp.read().decode("utf-8"))
            return bool(obj.get("messages"))
    except (urllib.error.URLError, ValueError, OSError):
        current_app.logger.exception("WhatsApp send to %s failed", to)
        return False
