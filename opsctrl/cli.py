import argparse
import logging
import sys

import requests

from opsctrl import auth
from opsctrl.client import EscalationError, RemoteDiagnosisClient
from opsctrl.config import NotLoggedInError, get_api_url, load_active_credentials
from opsctrl.diagnosis import diagnose_pod
from opsctrl.kube import KubeSignalSource, SignalSourceError
from opsctrl.loader import RuleLoadError, get_default_rules, load_rules
from opsctrl.output import output_result, output_rules


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="opsctrl", description="Diagnose failing Kubernetes pods"
    )
    parser.add_argument("--verbose", action="store_true")

    # Also accepted after the subcommand; SUPPRESS keeps the top-level value
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("--verbose", action="store_true", default=argparse.SUPPRESS)

    sub = parser.add_subparsers(dest="command", required=True)

    diag = sub.add_parser(
        "diagnose", parents=[common], help="Diagnose a pod using status, events and logs"
    )
    diag.add_argument("pod", help="Name of the pod to diagnose")
    diag.add_argument("-n", "--namespace", default="default")
    diag.add_argument("--context", help="Kubeconfig context to use")
    diag.add_argument("-c", "--container", help="Only fetch logs from this container")
    diag.add_argument("--rules", help="Path to a JSON or YAML rule file")
    diag.add_argument(
        "--format",
        choices=["text", "json", "yaml"],
        default="text",
        help="Output format (text, json, yaml)",
    )
    diag.add_argument(
        "--local-only",
        action="store_true",
        help="Skip the remote diagnosis service",
    )

    rules = sub.add_parser("rules", parents=[common], help="List loaded diagnosis rules")
    rules.add_argument("--rules", help="Path to a JSON or YAML rule file")

    sub.add_parser("login", parents=[common], help="Authenticate with Opsctrl Cloud")
    sub.add_parser("logout", parents=[common], help="Log out of Opsctrl Cloud")
    return parser


def _load(path):
    return load_rules(path) if path else get_default_rules()


def cmd_diagnose(args) -> int:
    ruleset = _load(args.rules)

    escalation = None
    if not args.local_only:
        creds = load_active_credentials()
        escalation = RemoteDiagnosisClient(creds["access_token"])

    source = KubeSignalSource.from_kubeconfig(args.context)
    outcome = diagnose_pod(
        source,
        args.pod,
        namespace=args.namespace,
        container=args.container,
        escalation=escalation,
        rules=ruleset.rules,
    )
    output_result(outcome, args.format)
    return 0


def cmd_rules(args) -> int:
    ruleset = _load(args.rules)
    print(f"Loaded {len(ruleset)} rules")
    output_rules(ruleset)
    return 0


def cmd_login(args) -> int:
    if auth.is_logged_in():
        print(
            "Already logged in. To re-authenticate, run `opsctrl logout` first."
        )
        return 0

    api_url = get_api_url()
    device = auth.initiate_login(api_url)
    print("\nOpen the link below in your browser to log in:")
    print(device["url"])
    print(f"\nPaste the code: {device['login_code']}\n")
    print("Waiting for authentication...")

    creds = auth.login(device["login_code"], api_url)
    name = creds.get("first_name")
    print(f"Logged in successfully{f'. Welcome {name}' if name else ''}.")
    return 0


def cmd_logout(args) -> int:
    if auth.logout():
        print("Logged out.")
    else:
        print("Not logged in.")
    return 0


COMMANDS = {
    "diagnose": cmd_diagnose,
    "rules": cmd_rules,
    "login": cmd_login,
    "logout": cmd_logout,
}


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="[%(levelname)s] %(name)s: %(message)s",
    )

    try:
        return COMMANDS[args.command](args)
    except SignalSourceError as e:
        print(f"[ERROR] {e} ({e.kind})", file=sys.stderr)
    except (
        RuleLoadError,
        EscalationError,
        NotLoggedInError,
        TimeoutError,
        requests.RequestException,
        ValueError,
    ) as e:
        print(f"[ERROR] {e}", file=sys.stderr)
    return 1


if __name__ == "__main__":
    sys.exit(main())
