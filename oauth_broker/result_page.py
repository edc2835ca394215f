"""
Page shown in the OAuth popup once the callback is handled. Tells the opener window the outcome
(postMessage, same origin only) and closes itself after a short countdown.
"""
import html
import json

from oauth_broker.messages import DEFAULT_LOCALE, get_message

CLOSE_AFTER_SECONDS = 3
MESSAGE_TYPE = "oauth_result"

# Only runs when an opener exists and is still open; leave it out where there is no browser opener.
_NOTIFY_OPENER_SCRIPT = """
    try {
      if (window.opener && !window.opener.closed) {
        window.opener.postMessage(payload, window.location.origin);
      }
    } catch (e) {}
"""


def build_payload_json(success: bool, message: str, state: str | None) -> str:
    """Compact JSON for embedding in <script>; '<' is escaped so the message can't close the tag."""
    payload = {
        "type": MESSAGE_TYPE,
        "state": state or "",
        "success": bool(success),
        "message": message or "",
    }
    return json.dumps(payload, ensure_ascii=False, separators=(",", ":")).replace("<", "\\u003c")


def render_result_page(
    success: bool,
    message: str,
    state: str | None = None,
    *,
    locale: str = DEFAULT_LOCALE,
    notify_opener: bool = True,
) -> str:
    """Self-contained HTML result page. No network calls."""
    def t(key: str, **params) -> str:
        return html.escape(get_message(key, locale, **params))

    safe_message = html.escape(message or "")
    payload_json = build_payload_json(success, message, state)
    title = t("page_title_success") if success else t("page_title_failure")
    status_class = "success" if success else "error"
    status_text = t("page_badge_success") if success else t("page_badge_failure")
    lang = "zh-CN" if locale == "zh" else "en"
    countdown_text = t("page_countdown", seconds=CLOSE_AFTER_SECONDS)
    # JS string literals for the countdown; json.dumps gives valid, escaped JS strings
    countdown_template = json.dumps(get_message("page_countdown", locale, seconds="{seconds}")).replace(
        "<", "\\u003c"
    )
    close_manually = json.dumps(get_message("page_close_manually", locale)).replace("<", "\\u003c")
    notify_script = _NOTIFY_OPENER_SCRIPT if notify_opener else ""

    return f"""<!DOCTYPE html>
<html lang="{lang}">
<head>
  <meta charset="UTF-8" />
  <meta name="viewport" content="width=device-width, initial-scale=1.0" />
  <title>{title}</title>
  <style>
    body {{ font-family: -apple-system, BlinkMacSystemFont, "Segoe UI", Roboto, Helvetica, Arial, sans-serif; background: #0b1220; color: #e6edf3; margin: 0; min-height: 100vh; display: flex; align-items: center; justify-content: center; }}
    .card {{ width: min(520px, 92vw); background: #111a2e; border: 1px solid rgba(255,255,255,0.08); border-radius: 16px; padding: 28px; }}
    .badge {{ display: inline-block; padding: 6px 12px; border-radius: 999px; font-weight: 600; font-size: 13px; }}
    .badge.success {{ background: rgba(34, 197, 94, 0.15); color: #4ade80; }}
    .badge.error {{ background: rgba(239, 68, 68, 0.12); color: #f87171; }}
    h1 {{ margin: 14px 0 10px; font-size: 22px; }}
    p {{ margin: 0 0 14px; line-height: 1.6; }}
    .hint {{ font-size: 13px; color: rgba(230,237,243,0.6); }}
    .btn {{ margin-top: 18px; width: 100%; padding: 12px 14px; border-radius: 10px; border: 1px solid rgba(255,255,255,0.12); background: rgba(255,255,255,0.06); color: #e6edf3; cursor: pointer; }}
  </style>
</head>
<body>
  <div class="card">
    <div class="badge {status_class}">OAuth {status_text}</div>
    <h1>{title}</h1>
    <p>{safe_message}</p>
    <p class="hint" id="countdown">{countdown_text}</p>
    <button class="btn" onclick="closeWindow()">{t("page_close_button")}</button>
  </div>
  <script>
    const payload = {payload_json};
{notify_script}
    function closeWindow() {{
      window.close();
      setTimeout(() => {{
        if (!window.closed) {{
          document.getElementById('countdown').textContent = {close_manually};
        }}
      }}, 100);
    }}

    let t = {CLOSE_AFTER_SECONDS};
    const el = document.getElementById('countdown');
    const timer = setInterval(() => {{
      t -= 1;
      if (t > 0) {{
        el.textContent = {countdown_template}.replace('{{seconds}}', t);
      }} else {{
        clearInterval(timer);
        closeWindow();
      }}
    }}, 1000);
  </script>
</body>
</html>"""
