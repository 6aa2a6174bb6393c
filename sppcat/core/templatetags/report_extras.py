from django import template
from django.conf import settings

from sppcat import __version__
from sppcat.core.models import TypeOfChange

register = template.Library()

BYTE_UNITS = ("B", "KiB", "MiB", "GiB", "TiB")


@register.simple_tag
def app_version():
    return __version__


@register.simple_tag
def app_language():
    return settings.SPPCAT_LANGUAGE


@register.filter
def human_bytes(size) -> str:
    """Format a byte count like 1.5 MiB"""
    try:
        value = float(size)
    except (TypeError, ValueError):
        return ""
    for unit in BYTE_UNITS[:-1]:
        if abs(value) < 1024:
            return f"{value:.0f} {unit}" if unit == "B" else f"{value:.1f} {unit}"
        value /= 1024
    return f"{value:.1f} {BYTE_UNITS[-1]}"


@register.filter
def change_label(type_of_change) -> str:
    try:
        return TypeOfChange(int(type_of_change)).label
    except (TypeError, ValueError):
        return ""


@register.filter
def join_parts(parts, separator: str = " ") -> str:
    """Join the text parts of a note or revision entry"""
    if not parts:
        return ""
    return separator.join(str(part) for part in parts)
