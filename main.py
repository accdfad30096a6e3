#!/usr/bin/env python3
"""
Trap System - Entry Point
═══════════════════════════════════════════════════════════════════════════

Uruchamia przykładową sesję: bohater przechodzi przez dół z kolcami
(pułapka standardowa, wykrywana pasywnie), a potem przez zamknięte
drzwi (pułapka interakcyjna z testem Athletics rzucanym z przewagą).
Na koniec prowadzący przywraca salę do stanu z eksportu makr.

Użycie:
    python main.py                    # Domyślny seed
    python main.py --seed 12345       # Konkretny seed
    python main.py --verbose          # Szczegółowy output

Wynik:
    - Wypisuje czat sesji na konsolę
    - Zapisuje dziennik zdarzeń do output/traps_{seed}.json
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent))

from trapsystem import TrapSystem
from trapsystem.core.config_loader import ConfigLoader
from trapsystem.events import EventType
from trapsystem.host import InMemoryHost, ManualScheduler, Page, Token, Character, Player
from trapsystem.notes.models import SkillCheck


def build_board(host: InMemoryHost) -> None:
    """Strona 10x10 kratek, bohater, dwie pułapki."""
    host.add_page(Page(id="dungeon", name="Dungeon", grid_size=70))
    host.add_player(Player(id="gm", name="Game Master", is_gm=True))
    host.add_player(Player(id="alice", name="Alice"))
    host.add_character(Character(
        id="c_hero", name="Valeria", controlled_by=["alice"],
        sheet_items={"passive_wisdom": 14},
    ))
    host.add_token(Token(
        id="hero", page_id="dungeon", name="Valeria", left=35, top=35,
        represents="c_hero", controlled_by=["alice"],
    ))
    host.add_token(Token(id="pit", page_id="dungeon", name="Spiked Pit", left=245, top=35, layer="gmlayer"))
    host.add_token(Token(id="door", page_id="dungeon", name="Stuck Door", left=245, top=245, layer="gmlayer"))
    host.add_macro("PitFall", "/em @{victim|name} falls onto the spikes!")
    host.add_macro("DoorOpens", "/em The door gives way.")
    host.add_macro("DoorHolds", "/em The door does not budge and a blade swings out!")
    host.add_macro("RoomReset", "!token-mod --ids hero pit door --set statusmarkers|-blue")


def print_chat(host: InMemoryHost, start: int) -> int:
    for message in host.messages[start:]:
        target = f" -> {message.target}" if message.target else ""
        print(f"  [{message.kind}{target}] {message.sender}: {message.content}")
    return len(host.messages)


async def run_session(system: TrapSystem, verbose: bool) -> None:
    host = system.host
    seen = 0

    print("Setup:")
    system.control.setup_trap("pit", uses=1, primary_macro="#PitFall")
    system.settings.set_passive_property("pit", "dc", "12")
    system.settings.set_passive_property("pit", "range", "30")
    system.settings.set_passive_property("pit", "showaura", "true")
    system.control.setup_interaction_trap(
        "door", uses=2,
        primary_macro="/em Something clicks inside the door.",
        success_macro="#DoorOpens",
        failure_macro="#DoorHolds",
        checks=[SkillCheck("Athletics", 12)],
    )
    system.exporter.export_macros()
    seen = print_chat(host, seen)

    print()
    print("-" * 60)
    print("Valeria walks east through the spiked pit...")
    print("-" * 60)
    host.update_token("hero", left=385, top=35)
    result = await system.handle_token_moved("hero", 35, 35)
    host.scheduler.advance(system.config.final_snap_delay)
    if result.hit is not None:
        print(f"  Triggered '{result.hit.trap_id}' ({result.hit.reason}) at {result.hit.point.to_list()}")
    seen = print_chat(host, seen)

    print()
    print("-" * 60)
    print("Valeria walks south into the stuck door...")
    print("-" * 60)
    hero = host.get_token("hero")
    start_left, start_top = hero.left, hero.top
    host.update_token("hero", left=245, top=385)
    await system.handle_token_moved("hero", start_left, start_top)
    host.scheduler.advance(system.config.final_snap_delay)
    seen = print_chat(host, seen)

    print()
    print("GM: trigger, then ask for Athletics with advantage")
    system.interaction.interact("door", "trigger")
    system.interaction.start_check("door", 0, moderator_id="gm")
    system.interaction.choose_roll_mode("gm", "advantage")
    for roll in system.rng.roll_dice("2d20").rolls:
        outcome = system.interaction.handle_roll_result(roll, character_id="c_hero")
        if outcome is not None and not outcome.waiting:
            print(f"  Athletics {outcome.total} vs DC {outcome.check.dc}: {'success' if outcome.success else 'failure'}")
    seen = print_chat(host, seen)

    print()
    print("GM: reset the room for the next group")
    summary = system.exporter.full_reset()
    pit = system.store.get_trap("pit")[1]
    print(f"  Restored {summary.states} objects, pit uses {pit.trigger.current_uses}/{pit.trigger.max_uses}")
    seen = print_chat(host, seen)

    if verbose:
        print()
        print("-" * 60)
        print("STATYSTYKI ZDARZEŃ")
        print("-" * 60)
        for event_type in EventType:
            count = len(system.events.get_events_by_type(event_type))
            if count > 0:
                print(f"  {event_type.name}: {count}")


def main():
    """Główna funkcja."""
    parser = argparse.ArgumentParser(
        description="Trap System demo session",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--seed",
        type=int,
        default=12345,
        help="Ziarno losowości (domyślnie: 12345)"
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Szczegółowy output"
    )
    parser.add_argument(
        "--no-save",
        action="store_true",
        help="Nie zapisuj dziennika do pliku"
    )

    args = parser.parse_args()
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING)

    print("=" * 60)
    print("TRAP SYSTEM")
    print("=" * 60)
    print(f"Seed: {args.seed}")
    print()

    host = InMemoryHost(ManualScheduler())
    build_board(host)
    system = TrapSystem(host, seed=args.seed, loader=ConfigLoader())

    asyncio.run(run_session(system, args.verbose))

    if not args.no_save:
        output_path = f"output/traps_{args.seed}.json"
        system.save_log(output_path)
        print()
        print(f"📄 Dziennik zapisany: {output_path}")

    print()
    print("Sesja zakończona!")

    return 0


if __name__ == "__main__":
    sys.exit(main())
