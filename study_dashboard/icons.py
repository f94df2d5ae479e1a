"""Fixed icon set referenced by ``Module.icon_name``."""

DEFAULT_ICON = "BookOpenIcon"

ICONS = {
    "BookOpenIcon": "\U0001F4D6",
    "FileTextIcon": "\U0001F4C4",
    "ClipboardCheckIcon": "\U0001F4CB",
    "TargetIcon": "\U0001F3AF",
    "StarIcon": "⭐",
    "MegaphoneIcon": "\U0001F4E3",
    "CheckCircleIcon": "✅",
    "UserIcon": "\U0001F464",
}


def resolve_icon(icon_name: str | None) -> str:
    """Glyph for an icon name; unknown names get the default icon."""
    return ICONS.get(icon_name or "", ICONS[DEFAULT_ICON])


def icon_label(icon_name: str) -> str:
    return icon_name.removesuffix("Icon")
