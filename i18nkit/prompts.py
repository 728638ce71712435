"""Prompt templates for identifier generation and translation."""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Optional, Sequence

LOCALE_NAMES = {
    "zh-CN": "Chinese",
    "en-US": "English",
    "ja-JP": "Japanese",
    "ko-KR": "Korean",
    "fr-FR": "French",
    "de-DE": "German",
    "es-ES": "Spanish",
    "pt-BR": "Portuguese",
    "ru-RU": "Russian",
    "ar-SA": "Arabic",
    "th-TH": "Thai",
    "vi-VN": "Vietnamese",
}


def locale_name(code: str) -> str:
    return LOCALE_NAMES.get(code, code)


@dataclass
class PromptOverrides:
    """User supplied prompt text; ``None`` keeps the built-in prompt."""

    id_system: Optional[str] = None
    id_user: Optional[str] = None
    translation_system: Optional[str] = None
    translation_user: Optional[str] = None


def id_generation_system_prompt(source_locale: str = "zh-CN", overrides: PromptOverrides | None = None) -> str:
    if overrides and overrides.id_system:
        return overrides.id_system
    source = locale_name(source_locale)
    return (
        f"You are an i18n key ID generator. Given a list of {source} texts, "
        "generate semantic camelCase English IDs for each text.\n\n"
        "Rules:\n"
        '1. Each ID should be a concise, semantic camelCase English identifier (e.g., "submitButton", '
        '"confirmDelete", "userNameLabel")\n'
        f"2. IDs should reflect the meaning of the {source} text\n"
        "3. Keep IDs short but descriptive (2-4 words combined)\n"
        '4. Use common abbreviations where appropriate (e.g., "btn" for button, "msg" for message)\n'
        "5. The number of returned IDs MUST exactly match the number of input texts\n"
        "6. Return valid JSON only\n\n"
        'Output format: {"id_list": ["id1", "id2", ...]}'
    )


def id_generation_user_prompt(
    texts: Sequence[str],
    source_locale: str = "zh-CN",
    overrides: PromptOverrides | None = None,
) -> str:
    text_list = json.dumps(list(texts), ensure_ascii=False, indent=2)
    if overrides and overrides.id_user:
        return overrides.id_user.replace("{count}", str(len(texts))).replace("{textList}", text_list)
    return f"Generate semantic IDs for the following {len(texts)} {locale_name(source_locale)} texts:\n{text_list}"


def translation_system_prompt(
    source_locale: str = "zh-CN",
    target_locale: str = "en-US",
    overrides: PromptOverrides | None = None,
) -> str:
    if overrides and overrides.translation_system:
        return overrides.translation_system
    source, target = locale_name(source_locale), locale_name(target_locale)
    example_in = json.dumps(
        {"loginWelcome": {source_locale: "欢迎 {name}，您有 {count} 条消息", target_locale: ""}},
        ensure_ascii=False,
    )
    example_out = json.dumps(
        {
            "loginWelcome": {
                source_locale: "欢迎 {name}，您有 {count} 条消息",
                target_locale: "Welcome {name}, you have {count} messages",
            }
        },
        ensure_ascii=False,
    )
    return (
        f"You are a professional translator. Translate the {source} values ({source_locale}) "
        f"in the given JSON to {target} ({target_locale}).\n\n"
        "Rules:\n"
        "1. Keep the JSON structure exactly the same\n"
        f"2. Only translate {source_locale} values to {target_locale}, do not modify keys or "
        f"{source_locale} values\n"
        f"3. If {target_locale} already has a value, keep it unchanged\n"
        "4. Translations should be natural and professional\n"
        "5. NEVER translate interpolation variables like {name}, {count}, {0}; keep them as-is\n"
        "6. NEVER translate HTML tags like <strong>, <br/>, <span>; keep them as-is\n"
        "7. Return valid JSON only, no markdown code fences\n\n"
        f"Example:\nInput: {example_in}\nOutput: {example_out}"
    )


def translation_user_prompt(
    json_text: str,
    source_locale: str = "zh-CN",
    target_locale: str = "en-US",
    overrides: PromptOverrides | None = None,
) -> str:
    if overrides and overrides.translation_user:
        return overrides.translation_user.replace("{jsonText}", json_text)
    return (
        f"Translate the following i18n entries from {locale_name(source_locale)} to "
        f"{locale_name(target_locale)}:\n{json_text}"
    )
