"""
Teksty menu prowadzącego.

Każda pozycja menu to przycisk czatu [Etykieta](!komenda ...).
Komendy kodują następną dostępną akcję sesji; ich parsowaniem
zajmuje się dyspozytor komend hosta.
"""

from __future__ import annotations
from typing import TYPE_CHECKING, List, Sequence, Tuple

from ..macros.substitution import describe_macro

if TYPE_CHECKING:
    from ..core.state import PendingCheck
    from ..notes.models import TriggerConfig

COMMAND = "!trapsystem"


def button(label: str, *args: object) -> str:
    return f"[{label}]({COMMAND} " + " ".join(str(a) for a in args) + ")"


def template(title: str, *rows: str) -> str:
    body = " ".join(f"{{{{{row}}}}}" for row in rows if row)
    return f"&{{template:default}} {{{{name={title}}}}} {body}".rstrip()


def interaction_menu(trap_id: str, trap_name: str, victim_name: str, trigger: "TriggerConfig") -> str:
    """Menu po wyzwoleniu: trigger / explain."""
    return template(
        f"🎯 {trap_name}",
        f"Triggered by={victim_name or 'GM'}",
        f"Primary={describe_macro(trigger.primary_macro)}",
        "Actions=" + " ".join([
            button("Trigger", "interact", trap_id, "trigger"),
            button("Explain", "interact", trap_id, "explain"),
        ]),
    )


def character_menu(trap_id: str, trap_name: str, characters: Sequence[Tuple[str, str]]) -> str:
    """Lista postaci do wyboru (id, nazwa)."""
    buttons = [button(name, "selectcharacter", trap_id, char_id) for char_id, name in characters]
    return template(f"👤 {trap_name}: who is it?", "Characters=" + " ".join(buttons))


def response_menu(
    trap_id: str,
    trap_name: str,
    character_name: str,
    trigger: "TriggerConfig",
) -> str:
    """Menu decyzji: allow / fail / testy / opcje."""
    rows: List[str] = [
        f"Character={character_name or 'unknown'}",
        "Decision=" + " ".join([
            button("Allow", "allow", trap_id),
            button("Fail", "fail", trap_id),
        ]),
    ]
    if trigger.checks:
        checks = [
            button(f"{check.skill} (DC {check.dc})", "check", trap_id, index)
            for index, check in enumerate(trigger.checks)
        ]
        rows.append("Checks=" + " ".join(checks))
    rows.append("Custom=" + button("Custom check", "customcheck", trap_id, "?{Skill}", "?{DC}"))
    if trigger.options:
        options = [
            button(describe_macro(option), "option", trap_id, index)
            for index, option in enumerate(trigger.options)
        ]
        rows.append("Options=" + " ".join(options))
    return template(f"⚖️ {trap_name}", *rows)


def roll_setup_menu(check: "PendingCheck") -> str:
    """Wybór trybu rzutu, zmiana DC, ujawnienie DC."""
    return template(
        f"🎲 {check.skill} (DC {check.dc})",
        f"Character={check.character_name or 'unknown'}",
        "Roll=" + " ".join([
            button("Advantage", "rollmode", "advantage"),
            button("Normal", "rollmode", "normal"),
            button("Disadvantage", "rollmode", "disadvantage"),
        ]),
        "DC=" + " ".join([
            button("Set DC", "setdc", "?{DC}"),
            button("Reveal DC", "revealdc"),
        ]),
    )


def roll_instruction(check: "PendingCheck") -> str:
    """Instrukcja dla gracza po wyborze trybu rzutu."""
    mode = check.advantage.value if check.advantage is not None else "normal"
    suffix = {"advantage": " with advantage", "disadvantage": " with disadvantage"}.get(mode, "")
    dc = f" (DC {check.dc})" if check.reveal_dc else ""
    who = check.character_name or "Character"
    return template("🎲 Roll required", f"message={who}: roll {check.skill}{suffix}{dc}.")


def mismatch_menu(check: "PendingCheck") -> str:
    """Rzucono inny test niż zlecony - GM przyjmuje wynik albo prosi o ponowny rzut."""
    who = check.character_name or "Character"
    return template(
        "⚠️ Roll mismatch",
        f"message={who} rolled {check.mismatched_skill} ({check.mismatched_roll}), "
        f"but {check.skill} (DC {check.dc}) was requested.",
        "Resolve=" + " ".join([
            button("Accept", "resolvemismatch", check.trap_id, "accept"),
            button("Reject", "resolvemismatch", check.trap_id, "reject"),
        ]),
    )
