import sys
from pathlib import Path

from courtroom import services
from courtroom.config import get_settings
from courtroom.db import Store

SIDES = {"a": "Lawyer A", "b": "Lawyer B"}
CASE_SEPARATOR = "\n---\n"


def load_case_text(argv):
    """Case text from a file given on the command line, or typed in."""
    if len(argv) > 1:
        path = Path(argv[1])
        if not path.exists():
            print(f"Case file {path} does not exist.")
            sys.exit(1)
        return path.read_text(encoding="utf-8")

    print("Paste the case text. Separate Lawyer A and Lawyer B with a line containing only ---.")
    print("Finish with an empty line.\n")
    lines = []
    while True:
        line = input()
        if not line:
            break
        lines.append(line)
    return "\n".join(lines)


def print_verdict(result):
    print("\n=== Judge's Verdict ===")
    print(result["verdict"])
    if result["reasoning"]:
        print(f"Reasoning: {result['reasoning']}")
    print(f"Confidence: {result['confidence']}%\n")


def main(argv=None):
    argv = argv if argv is not None else sys.argv
    settings = get_settings()
    print("=== Courtroom CLI ===\n")

    text = load_case_text(argv)
    parts = text.split(CASE_SEPARATOR)

    with Store(settings.database_url) as store:
        case = store.create_case(
            lawyerA_text=parts[0],
            lawyerB_text=parts[1] if len(parts) > 1 else "",
            file_text=text,
        )
        print(f"Created case {case.id}\n")

        while True:
            side = input("Who argues next? (a/b, empty to finish): ").strip().lower()
            if not side:
                break
            if side not in SIDES:
                print("Please answer 'a' or 'b'.")
                continue
            argument = input(f"[{SIDES[side]}] ").strip()
            if not argument:
                continue

            store.add_argument(case.id, SIDES[side], argument)
            args = store.list_arguments(case.id)
            result = services.call_judge(case, args, settings=settings)
            store.add_verdict(case.id, services.verdict_text(result), args[-1].round, result["confidence"])
            print_verdict(result)

        latest = store.latest_verdict(case.id)
        if latest:
            print("=== Final Verdict ===")
            print(latest.text)


if __name__ == "__main__":
    main()
