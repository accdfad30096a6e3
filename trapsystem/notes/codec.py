"""
Kodek notatek - jedyne miejsce, które czyta i pisze tekst konfiguracji.

Konfiguracja pułapki żyje w notatce prowadzącego na tokenie pułapki.
Host przechowuje notatkę zakodowaną procentowo (jak encodeURIComponent),
czasem owiniętą w HTML (<p>, <br>, encje).

FORMAT:
═══════════════════════════════════════════════════════════════════

    {!traptrigger type:[interaction] uses:[1/3] armed:[on]
        primaryMacro:[#Spikes] successMacro:[] failureMacro:[]
        options:[#Alarm;!ping] checks:[Athletics:12;Acrobatics:14]
        position:[intersection] movementTrigger:[on] autoTrigger:[off]}

    {!trapdetection passiveSpotDC:[15] passiveMaxRange:[30]
        passiveNoticePlayer:["You see [something]"] passiveNoticeGM:[]
        ppTokenBarFallback:[bar3] enableLuckRoll:[true] luckRollDie:[1d6]
        showDetectionAura:[on] passiveEnabled:[on] detected:[off]}

    {ignoretraps}      <- tag odporności (na tokenie gracza)

Reguły:
    - klucze: bez rozróżniania wielkości liter, nieznane są ignorowane
    - wartość: key:[value]; wartość z '[' lub ']' (albo zaczynająca
      się od '"') zapisywana jest w cudzysłowie: key:["a [b] c"],
      z ucieczkami \\" i \\\\
    - '&' i '<' w wartościach zapisywane jako &amp; i &lt;, żeby
      normalizacja HTML hosta ich nie zmieniła
    - listy (options, checks) rozdzielane ';', średnik w elemencie: \\;
    - boolean: on/off, true/false, yes/no, 1/0
    - position: intersection | center | x,y
    - brak obu bloków -> decode() zwraca None

Dekodowanie używa skanera znak po znaku (nie wyrażeń regularnych),
więc ']' i '}' wewnątrz cudzysłowów nie kończą wartości ani bloku.

Zapis (rewrite) podmienia tylko bloki konfiguracji - reszta notatki
prowadzącego (opisy, tagi) zostaje bez zmian.
"""

from __future__ import annotations
import html
import logging
import re
from typing import Dict, Iterable, List, Optional, Tuple
from urllib.parse import quote, unquote

from ..errors import ConfigurationInvalid
from .models import (
    TrapConfig,
    TriggerConfig,
    DetectionConfig,
    TrapType,
    Placement,
    PlacementMode,
    SkillCheck,
)

logger = logging.getLogger(__name__)

TRIGGER_BLOCK = "traptrigger"
DETECTION_BLOCK = "trapdetection"
IGNORE_TAG = "ignoretraps"

# Znaki, których encodeURIComponent nie koduje
URI_SAFE = "-_.!~*'()"

_TRUE = {"on", "true", "yes", "1"}
_FALSE = {"off", "false", "no", "0"}
_LINE_BREAKS = re.compile(r"<\s*br\s*/?\s*>|<\s*/?\s*p(\s[^>]*)?>|&nbsp;", re.IGNORECASE)


# ─────────────────────────────────────────────────────────────────────────────
# NORMALIZACJA
# ─────────────────────────────────────────────────────────────────────────────

def normalize(text: Optional[str]) -> str:
    """
    Zamienia surową notatkę na czysty tekst.

    Dekoduje procenty (niepoprawne sekwencje zostają bez zmian),
    zamienia znaczniki <br>/<p> na spacje i rozwija encje HTML.
    """
    if not text:
        return ""
    decoded = unquote(text)
    decoded = _LINE_BREAKS.sub(" ", decoded)
    return html.unescape(decoded)


def _raw(text: Optional[str]) -> str:
    """Notatka po zdjęciu kodowania procentowego, bez normalizacji HTML."""
    return unquote(text) if text else ""


# ─────────────────────────────────────────────────────────────────────────────
# SKANER
# ─────────────────────────────────────────────────────────────────────────────

def _find_block(text: str, name: str) -> Optional[int]:
    """Pozycja zaraz za nagłówkiem {!name, albo None."""
    lowered = text.lower()
    marker = "{!" + name
    pos = lowered.find(marker)
    while pos != -1:
        end = pos + len(marker)
        if end >= len(text) or not text[end].isalnum():
            return end
        pos = lowered.find(marker, end)
    return None


def _read_bracket_value(text: str, pos: int) -> Tuple[str, int]:
    """
    Czyta wartość zaczynającą się zaraz za '['.

    Returns:
        Tuple[str, int]: (wartość, pozycja za zamykającym ']')
    """
    n = len(text)
    if pos < n and text[pos] == '"':
        chars: List[str] = []
        pos += 1
        while pos < n:
            ch = text[pos]
            if ch == "\\" and pos + 1 < n:
                chars.append(text[pos + 1])
                pos += 2
                continue
            if ch == '"':
                pos += 1
                break
            chars.append(ch)
            pos += 1
        while pos < n and text[pos] != "]":
            pos += 1
        return "".join(chars), min(pos + 1, n)

    end = text.find("]", pos)
    if end == -1:
        return text[pos:], n
    return text[pos:end], end + 1


def _scan_pairs(text: str, pos: int) -> Tuple[Dict[str, str], int]:
    """
    Czyta pary key:[value] aż do '}' zamykającego blok.

    Klucze są zwracane małymi literami.

    Returns:
        Tuple[Dict[str, str], int]: (pary, pozycja za zamykającym '}')
    """
    pairs: Dict[str, str] = {}
    n = len(text)
    while pos < n:
        ch = text[pos]
        if ch.isspace():
            pos += 1
            continue
        if ch == "}":
            return pairs, pos + 1

        start = pos
        while pos < n and text[pos] not in ":}" and not text[pos].isspace():
            pos += 1
        key = text[start:pos].lower()
        if pos >= n or text[pos] != ":":
            continue
        pos += 1

        if pos < n and text[pos] == "[":
            value, pos = _read_bracket_value(text, pos + 1)
        else:
            start = pos
            while pos < n and not text[pos].isspace() and text[pos] != "}":
                pos += 1
            value = text[start:pos]
        if key:
            pairs[key] = value
    return pairs, n


def _block_span(text: str, name: str) -> Optional[Tuple[int, int]]:
    """Zakres [start, end) całego bloku {!name ...}, albo None."""
    header_end = _find_block(text, name)
    if header_end is None:
        return None
    _, end = _scan_pairs(text, header_end)
    return header_end - len("{!" + name), end


def _split_list(value: Optional[str]) -> List[str]:
    """Dzieli listę po ';' pomijając '\\;'. Ucieczki \\; i \\\\ są zdejmowane."""
    items: List[str] = []
    chars: List[str] = []
    text = value or ""
    pos, n = 0, len(text)
    while pos < n:
        ch = text[pos]
        if ch == "\\" and pos + 1 < n and text[pos + 1] in ";\\":
            chars.append(text[pos + 1])
            pos += 2
            continue
        if ch == ";":
            items.append("".join(chars))
            chars = []
        else:
            chars.append(ch)
        pos += 1
    items.append("".join(chars))
    return items


def _join_list(items: Iterable[str]) -> str:
    return ";".join(item.replace("\\", "\\\\").replace(";", "\\;") for item in items)


# ─────────────────────────────────────────────────────────────────────────────
# WARTOŚCI
# ─────────────────────────────────────────────────────────────────────────────

def _parse_bool(value: Optional[str], default: bool) -> bool:
    if value is None:
        return default
    key = value.strip().lower()
    if key in _TRUE:
        return True
    if key in _FALSE:
        return False
    return default


def _parse_int(value: Optional[str]) -> Optional[int]:
    if value is None or not value.strip():
        return None
    try:
        return int(float(value.strip()))
    except (ValueError, OverflowError):
        return None


def _parse_float(value: Optional[str]) -> Optional[float]:
    if value is None or not value.strip():
        return None
    try:
        return float(value.strip())
    except ValueError:
        return None


def _parse_text(value: Optional[str]) -> Optional[str]:
    if value is None or not value.strip():
        return None
    return value


def _parse_uses(value: Optional[str]) -> Optional[Tuple[int, int]]:
    if value is None:
        return None
    current, _, maximum = value.partition("/")
    cur = _parse_int(current)
    mx = _parse_int(maximum) if maximum else cur
    if cur is None or mx is None:
        return None
    mx = max(0, mx)
    return min(max(0, cur), mx), mx


def _parse_checks(value: Optional[str]) -> List[SkillCheck]:
    checks: List[SkillCheck] = []
    for part in _split_list(value):
        skill, sep, dc_text = part.rpartition(":")
        skill = skill.strip()
        if not sep or not skill or skill.lower() == "none":
            continue
        dc = _parse_int(dc_text)
        if dc is None:
            logger.warning("Ignoring skill check with invalid DC: %r", part)
            continue
        checks.append(SkillCheck(skill=skill, dc=dc))
    return checks


def _parse_position(value: Optional[str]) -> Placement:
    key = (value or "").strip().lower()
    if key in ("", "intersection"):
        return Placement()
    if key == "center":
        return Placement(PlacementMode.CENTER)
    x_text, sep, y_text = key.partition(",")
    x, y = _parse_int(x_text), _parse_int(y_text)
    if sep and x is not None and y is not None:
        return Placement.at_cell(x, y)
    logger.warning("Unknown trap position %r, using intersection", value)
    return Placement()


def parse_skill_check(text: str) -> Optional[SkillCheck]:
    """
    Parsuje pojedynczy test "Nazwa:DC" (np. z formularza prowadzącego).

    Returns:
        Optional[SkillCheck]: None dla "none" lub niepoprawnego DC
    """
    checks = _parse_checks(text)
    return checks[0] if checks else None


# ─────────────────────────────────────────────────────────────────────────────
# DEKODOWANIE
# ─────────────────────────────────────────────────────────────────────────────

def _decode_trigger(pairs: Dict[str, str]) -> TriggerConfig:
    trigger = TriggerConfig()
    if pairs.get("type", "").strip().lower() == TrapType.INTERACTION.value:
        trigger.trap_type = TrapType.INTERACTION
    uses = _parse_uses(pairs.get("uses"))
    if uses is not None:
        trigger.current_uses, trigger.max_uses = uses
    trigger.is_armed = _parse_bool(pairs.get("armed"), True)
    trigger.primary_macro = _parse_text(pairs.get("primarymacro"))
    trigger.success_macro = _parse_text(pairs.get("successmacro"))
    trigger.failure_macro = _parse_text(pairs.get("failuremacro"))
    trigger.options = [o.strip() for o in _split_list(pairs.get("options")) if o.strip()]
    trigger.checks = _parse_checks(pairs.get("checks"))
    trigger.position = _parse_position(pairs.get("position"))
    trigger.movement_trigger = _parse_bool(pairs.get("movementtrigger"), True)
    trigger.auto_trigger = _parse_bool(pairs.get("autotrigger"), False)
    return trigger


def _decode_detection(pairs: Dict[str, str]) -> DetectionConfig:
    detection = DetectionConfig()
    detection.spot_dc = _parse_int(pairs.get("passivespotdc"))
    detection.max_range = _parse_float(pairs.get("passivemaxrange"))
    detection.notice_player = _parse_text(pairs.get("passivenoticeplayer"))
    detection.notice_gm = _parse_text(pairs.get("passivenoticegm"))
    bar = _parse_text(pairs.get("pptokenbarfallback"))
    detection.bar_fallback = None if bar is None or bar.strip().lower() == "none" else bar.strip()
    detection.luck_enabled = _parse_bool(pairs.get("enableluckroll"), False)
    detection.luck_die = (pairs.get("luckrolldie") or "").strip() or DetectionConfig.luck_die
    detection.show_aura = _parse_bool(pairs.get("showdetectionaura"), False)
    detection.passive_enabled = _parse_bool(pairs.get("passiveenabled"), True)
    detection.detected = _parse_bool(pairs.get("detected"), False)
    return detection


def decode(text: Optional[str]) -> Optional[TrapConfig]:
    """
    Dekoduje notatkę tokena.

    Args:
        text: Surowa notatka (zakodowana procentowo i/lub HTML)

    Returns:
        Optional[TrapConfig]: None gdy brak obu bloków

    Example:
        >>> cfg = decode("{!traptrigger uses:[2/3] armed:[on]}")
        >>> cfg.trigger.current_uses, cfg.trigger.max_uses
        (2, 3)
    """
    plain = normalize(text)
    trigger_pos = _find_block(plain, TRIGGER_BLOCK)
    detection_pos = _find_block(plain, DETECTION_BLOCK)
    if trigger_pos is None and detection_pos is None:
        return None

    config = TrapConfig()
    if trigger_pos is not None:
        config.trigger = _decode_trigger(_scan_pairs(plain, trigger_pos)[0])
    if detection_pos is not None:
        config.detection = _decode_detection(_scan_pairs(plain, detection_pos)[0])
    return config


def require_config(text: Optional[str], token_name: str = "") -> TrapConfig:
    """
    Jak decode(), ale wymaga bloku wyzwalacza.

    Raises:
        ConfigurationInvalid: Gdy token nie jest pułapką
    """
    config = decode(text)
    if config is None or config.trigger is None:
        raise ConfigurationInvalid(f"Token '{token_name}' has no trap configuration")
    return config


# ─────────────────────────────────────────────────────────────────────────────
# KODOWANIE
# ─────────────────────────────────────────────────────────────────────────────

def format_value(value: Optional[str]) -> str:
    """Zwraca key:[...] - wartość w cudzysłowie, jeśli to konieczne."""
    text = "" if value is None else str(value)
    # decode() rozwija encje i <br>, więc zapisany tekst musi to przetrwać
    text = text.replace("&", "&amp;").replace("<", "&lt;")
    if "[" in text or "]" in text or text.startswith('"'):
        escaped = text.replace("\\", "\\\\").replace('"', '\\"')
        return f'["{escaped}"]'
    return f"[{text}]"


def _format_number(value: Optional[float]) -> str:
    if value is None:
        return ""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _format_bool(value: bool) -> str:
    return "on" if value else "off"


def _format_position(position: Placement) -> str:
    if position.mode == PlacementMode.CELL and position.cell is not None:
        return f"{position.cell[0]},{position.cell[1]}"
    return position.mode.value


def _trigger_text(trigger: TriggerConfig) -> str:
    fields = [
        ("type", trigger.trap_type.value),
        ("uses", f"{trigger.current_uses}/{trigger.max_uses}"),
        ("armed", _format_bool(trigger.is_armed)),
        ("primaryMacro", trigger.primary_macro),
        ("failureMacro", trigger.failure_macro),
        ("successMacro", trigger.success_macro),
        ("options", _join_list(trigger.options)),
        ("checks", _join_list(f"{c.skill}:{c.dc}" for c in trigger.checks)),
        ("position", _format_position(trigger.position)),
        ("movementTrigger", _format_bool(trigger.movement_trigger)),
        ("autoTrigger", _format_bool(trigger.auto_trigger)),
    ]
    body = " ".join(f"{key}:{format_value(value)}" for key, value in fields)
    return "{!" + TRIGGER_BLOCK + " " + body + "}"


def _detection_text(detection: DetectionConfig) -> str:
    fields = [
        ("passiveSpotDC", _format_number(detection.spot_dc)),
        ("passiveMaxRange", _format_number(detection.max_range)),
        ("passiveNoticePlayer", detection.notice_player),
        ("passiveNoticeGM", detection.notice_gm),
        ("ppTokenBarFallback", detection.bar_fallback),
        ("enableLuckRoll", "true" if detection.luck_enabled else "false"),
        ("luckRollDie", detection.luck_die),
        ("showDetectionAura", _format_bool(detection.show_aura)),
        ("passiveEnabled", _format_bool(detection.passive_enabled)),
        ("detected", _format_bool(detection.detected)),
    ]
    body = " ".join(f"{key}:{format_value(value)}" for key, value in fields)
    return "{!" + DETECTION_BLOCK + " " + body + "}"


def to_text(config: TrapConfig, tags: Iterable[str] = ()) -> str:
    """Zwraca konfigurację jako czysty (niezakodowany) tekst."""
    parts: List[str] = []
    if config.trigger is not None:
        parts.append(_trigger_text(config.trigger))
    if config.detection is not None:
        parts.append(_detection_text(config.detection))
    parts.extend("{" + tag + "}" for tag in tags)
    return " ".join(parts)


def encode(config: TrapConfig, tags: Iterable[str] = ()) -> str:
    """
    Koduje konfigurację do postaci zapisywanej w notatce.

    Args:
        config: Konfiguracja
        tags: Tagi do dołączenia (np. "ignoretraps")

    Returns:
        str: Tekst zakodowany procentowo
    """
    return quote(to_text(config, tags), safe=URI_SAFE)


def _replace_block(text: str, name: str, block: Optional[str]) -> str:
    span = _block_span(text, name)
    if span is None:
        if block is None:
            return text
        return f"{text.rstrip()} {block}" if text.strip() else block
    start, end = span
    if block is None:
        return (text[:start].rstrip() + " " + text[end:].lstrip()).strip()
    return text[:start] + block + text[end:]


def rewrite(previous_text: Optional[str], config: TrapConfig) -> str:
    """
    Zapisuje nową konfigurację w istniejącej notatce.

    Podmienia tylko bloki {!traptrigger} / {!trapdetection}; brakujące
    bloki dopisuje na końcu. Pozostały tekst notatki (opisy prowadzącego,
    dowolne tagi) zostaje bez zmian.

    Returns:
        str: Tekst zakodowany procentowo
    """
    text = _raw(previous_text)
    trigger = _trigger_text(config.trigger) if config.trigger is not None else None
    detection = _detection_text(config.detection) if config.detection is not None else None
    text = _replace_block(text, TRIGGER_BLOCK, trigger)
    text = _replace_block(text, DETECTION_BLOCK, detection)
    return quote(text, safe=URI_SAFE)


# ─────────────────────────────────────────────────────────────────────────────
# TAGI
# ─────────────────────────────────────────────────────────────────────────────

def has_tag(text: Optional[str], tag: str) -> bool:
    """Czy notatka zawiera tag {tag} (bez rozróżniania wielkości liter)."""
    return ("{" + tag.lower() + "}") in normalize(text).lower().replace(" ", "")


def add_tag(text: Optional[str], tag: str) -> str:
    """Dodaje tag do notatki (no-op, jeśli już jest). Zwraca tekst zakodowany."""
    if has_tag(text, tag):
        return text or ""
    plain = _raw(text).strip()
    plain = f"{plain} {{{tag}}}".strip()
    return quote(plain, safe=URI_SAFE)


def remove_tag(text: Optional[str], tag: str) -> str:
    """Usuwa tag z notatki. Zwraca tekst zakodowany."""
    pattern = re.compile(r"\{\s*" + re.escape(tag) + r"\s*\}", re.IGNORECASE)
    plain = pattern.sub("", _raw(text)).strip()
    return quote(plain, safe=URI_SAFE)
