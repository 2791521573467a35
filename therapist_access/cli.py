"""
Interactive CLI for inspecting therapist visibility decisions.
Pick a viewer and an organisation and see what each profile allows.
"""

from therapist_access.actors import resolve_actor
from therapist_access.collection import filter_visible
from therapist_access.database import init_engine, fetch_therapists, membership_lookup
from therapist_access.visibility import evaluate


def _flag(value: bool) -> str:
    return "yes" if value else "-"


def format_decisions(actor, records) -> str:
    """Render one line per record with the actor's decision."""
    header = f"{'therapist':<38} {'visibility':<18} {'state':<9} view edit publish delete"
    lines = [header, "-" * len(header)]
    for record in records:
        d = evaluate(actor, record)
        visibility = getattr(record.visibility, "value", record.visibility)
        state = "live" if record.is_published else "draft"
        lines.append(
            f"{str(record.id):<38} {str(visibility):<18} {state:<9} "
            f"{_flag(d.visible):<4} {_flag(d.can_edit):<4} {_flag(d.can_publish):<7} {_flag(d.can_delete)}"
        )
    return "\n".join(lines)


def main():
    print("=== Therapist Access Policy: decision explorer ===\n")

    engine = init_engine()
    lookup = membership_lookup(engine)

    while True:
        try:
            user_id = input("\nUser id (blank for anonymous, 'quit' to exit): ").strip()
            if user_id.lower() in {"quit", "exit"}:
                print("Goodbye.")
                break
            org_id = input("Organisation id: ").strip()
        except (EOFError, KeyboardInterrupt):
            print("\nExiting.")
            break

        if not org_id:
            print("[WARN] An organisation id is required.")
            continue

        session = {"user_id": user_id} if user_id else None
        actor = resolve_actor(session, org_id, lookup)
        print(f"\n[actor] authenticated={actor.is_authenticated} role={actor.organisation_role.value}")

        try:
            records = fetch_therapists(engine, org_id)
        except Exception as e:
            print("\n[DB ERROR] Could not load therapists.")
            print("Details:", e)
            continue

        if not records:
            print("(no therapists in this organisation)")
            continue

        print(format_decisions(actor, records))
        print(f"\n[policy] {len(filter_visible(actor, records))} of {len(records)} visible")


if __name__ == "__main__":
    main()
