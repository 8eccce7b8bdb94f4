"""
Export the authorization policy document for the web frontend.

The frontend imports this JSON instead of keeping its own role table, so both
sides gate on the same vocabulary. Re-run after any change to
smartnav/auth/policy.py and commit the result with the frontend build.

Usage:
    python -m scripts.export_policy --output ../frontend/src/config/policy.json
    python -m scripts.export_policy --check ../frontend/src/config/policy.json
"""
import argparse
import json
import os
import sys

# Add parent directory to path to import smartnav modules
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from smartnav.auth.policy import DEFAULT_POLICY, Policy


def render_policy(policy: Policy = DEFAULT_POLICY) -> str:
    return json.dumps(policy.to_document(), indent=2, sort_keys=False) + "\n"


def check_policy_file(path: str, policy: Policy = DEFAULT_POLICY) -> list[str]:
    """Return the differences between an exported file and the current policy."""
    try:
        exported = Policy.load(path)
    except (OSError, ValueError) as exc:
        return [str(exc)]

    problems = []
    current = policy.to_document()
    stale = exported.to_document()
    for field, value in current.items():
        if stale.get(field) != value:
            problems.append(f"{field} differs from the current policy")
    return problems


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[1])
    group = parser.add_mutually_exclusive_group()
    group.add_argument("--output", help="write the policy document to this file")
    group.add_argument("--check", help="fail if this exported file is out of date")
    args = parser.parse_args(argv)

    if args.check:
        problems = check_policy_file(args.check)
        for problem in problems:
            print(f"  - {problem}", file=sys.stderr)
        if problems:
            print(f"Policy export {args.check} is out of date", file=sys.stderr)
            return 1
        print(f"Policy export {args.check} is up to date")
        return 0

    document = render_policy()
    if args.output:
        with open(args.output, "w", encoding="utf-8") as handle:
            handle.write(document)
        print(f"Wrote policy version {DEFAULT_POLICY.version} to {args.output}")
    else:
        sys.stdout.write(document)
    return 0


if __name__ == "__main__":
    sys.exit(main())
