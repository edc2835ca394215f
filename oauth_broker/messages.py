"""
User-facing messages, per locale. "zh" keeps the wording the admin UI was built with.
Provider and exchange error text is interpolated through {detail}.
"""
DEFAULT_LOCALE = "en"

MESSAGES: dict[str, dict[str, str]] = {
    "en": {
        "missing_state": "Missing state",
        "missing_state_input": (
            "Missing state: click \"Add account via OAuth\" to create a state first, "
            "then paste the callback URL or code"
        ),
        "missing_input": "Enter the callback URL (with code/state) or the authorization code",
        "missing_code": "Missing code",
        "session_not_found": "OAuth state not found or expired",
        "session_busy": "Authorization for this state is already in progress",
        "provider_error": "Authorization failed: {detail}",
        "exchange_failed": "Failed to obtain token: {detail}",
        "success": "Authorization succeeded",
        "unknown_error": "Authorization failed",
        "page_title_success": "OAuth authorization succeeded",
        "page_title_failure": "OAuth authorization failed",
        "page_badge_success": "Success",
        "page_badge_failure": "Failed",
        "page_countdown": "This window will close in {seconds} seconds",
        "page_close_manually": "Please close this window manually",
        "page_close_button": "Close window",
    },
    "zh": {
        "missing_state": "Missing state",
        "missing_state_input": "缺少 state：请先点击 “OAuth 添加账号” 生成 state，再粘贴回调链接或 code 提交",
        "missing_input": "请输入回调链接（含 code/state）或授权码 code",
        "missing_code": "Missing code",
        "session_not_found": "OAuth state not found or expired",
        "session_busy": "该 state 的授权正在进行中",
        "provider_error": "授权失败: {detail}",
        "exchange_failed": "获取 token 失败: {detail}",
        "success": "授权成功",
        "unknown_error": "授权失败",
        "page_title_success": "OAuth 授权成功",
        "page_title_failure": "OAuth 授权失败",
        "page_badge_success": "成功",
        "page_badge_failure": "失败",
        "page_countdown": "窗口将在 {seconds} 秒后自动关闭",
        "page_close_manually": "请手动关闭此窗口",
        "page_close_button": "关闭窗口",
    },
}


def get_message(key: str, locale: str = DEFAULT_LOCALE, **params: object) -> str:
    """Look up key for locale (falling back to English) and format it with params."""
    catalog = MESSAGES.get(locale) or MESSAGES[DEFAULT_LOCALE]
    template = catalog.get(key) or MESSAGES[DEFAULT_LOCALE].get(key, key)
    return template.format(**params) if params else template
