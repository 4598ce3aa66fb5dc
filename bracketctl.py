#!/usr/bin/env python3
"""Operate tournament brackets stored in DynamoDB.

Each subcommand runs one engine operation against the tournament table.
``cleanup-duplicates`` performs no writes unless ``--execute`` is given.
"""

from __future__ import annotations

import argparse
import json
import logging
from collections.abc import Sequence
from dataclasses import replace
from typing import Any

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from bracket_engine import (
    EngineConfig,
    ParticipantRef,
    TournamentEngine,
    TournamentEngineError,
    TournamentStorage,
    read_engine_config,
)

log = logging.getLogger("bracketctl")

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument(
        "--table",
        help="DynamoDB table name (defaults to TOURNAMENT_TABLE_NAME)",
    )
    parser.add_argument("--profile", help="Optional AWS profile to use")
    parser.add_argument("--region", help="AWS region (defaults to AWS_REGION)")
    parser.add_argument(
        "--log-level",
        default="INFO",
        help="Logging level (default: INFO)",
    )
    parser.add_argument(
        "--host",
        action="append",
        default=[],
        metavar="HOST_ID=REGION",
        help="Result host for a region in host confirmation mode (repeatable; "
        "adds to RESULT_HOSTS)",
    )
    commands = parser.add_subparsers(dest="command", required=True)

    create = commands.add_parser("create-tournament", help="Create a tournament")
    create.add_argument("tournament_id")
    create.add_argument("--game", required=True)
    create.add_argument("--max-teams", type=int, required=True)
    create.add_argument("--host-region", help="Optional hosting region")

    register = commands.add_parser(
        "register", help="Count one registration against a tournament"
    )
    register.add_argument("tournament_id")

    generate = commands.add_parser("generate", help="Seed a tournament bracket")
    generate.add_argument("tournament_id")
    generate.add_argument(
        "--competitors",
        required=True,
        help="JSON file with the seeded list of team or clan payloads",
    )

    submit = commands.add_parser("submit", help="Submit a match result")
    submit.add_argument("match_id")
    submit.add_argument("--submitter", required=True)
    submit.add_argument("--winner", required=True)
    submit.add_argument("--notes", default="")
    submit.add_argument(
        "--attest-region", help="Region attested for (host confirmation mode)"
    )

    propose = commands.add_parser("propose", help="Propose a match time")
    propose.add_argument("match_id")
    propose.add_argument("--proposer", required=True)
    propose.add_argument("--when", required=True, help="ISO date/time, UTC if naive")

    approve = commands.add_parser("approve", help="Approve the proposed match time")
    approve.add_argument("match_id")
    approve.add_argument("--approver", required=True)

    start = commands.add_parser("start", help="Open a scheduled match for results")
    start.add_argument("match_id")

    resolve = commands.add_parser("resolve", help="Settle a match by admin decision")
    resolve.add_argument("match_id")
    resolve.add_argument("--admin", required=True)
    resolve.add_argument("--winner", required=True)
    resolve.add_argument("--notes", default="")

    show = commands.add_parser("show", help="Print a bracket")
    show.add_argument("bracket_id")

    cleanup = commands.add_parser(
        "cleanup-duplicates", help="Remove matches re-pairing a competitor"
    )
    cleanup.add_argument("bracket_id")
    cleanup.add_argument(
        "--execute",
        action="store_true",
        help="Delete the duplicates instead of printing them",
    )
    return parser


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO), format=LOG_FORMAT
    )


def load_competitors(path: str) -> list[ParticipantRef]:
    with open(path, "r", encoding="utf-8") as handle:
        data = json.load(handle)
    if not isinstance(data, list):
        raise SystemExit("Competitor file must contain a JSON list")
    competitors: list[ParticipantRef] = []
    for entry in data:
        if not isinstance(entry, dict):
            raise SystemExit("Each competitor must be a JSON object")
        try:
            competitors.append(ParticipantRef.from_payload(entry))
        except ValueError as exc:
            raise SystemExit(str(exc)) from exc
    return competitors


def parse_hosts(entries: Sequence[str]) -> tuple[tuple[str, str], ...]:
    hosts: list[tuple[str, str]] = []
    for entry in entries:
        host, sep, region = entry.partition("=")
        if not sep or not host.strip() or not region.strip():
            raise SystemExit(f"Invalid --host value {entry!r}; expected HOST_ID=REGION")
        hosts.append((host.strip().lower(), region.strip()))
    return tuple(hosts)


def build_table(args: argparse.Namespace, config: EngineConfig):
    table_name = args.table or config.table_name
    if not table_name:
        raise SystemExit(
            "No DynamoDB table specified (--table or TOURNAMENT_TABLE_NAME)"
        )
    session_kwargs: dict[str, Any] = {
        "region_name": args.region or config.aws_region,
    }
    if args.profile:
        session_kwargs["profile_name"] = args.profile
    session = boto3.Session(**session_kwargs)
    return session.resource("dynamodb").Table(table_name)


def run_command(args: argparse.Namespace, engine: TournamentEngine) -> int:
    command = args.command
    if command == "create-tournament":
        tournament = engine.create_tournament(
            args.tournament_id, args.game, args.max_teams, region=args.host_region
        )
        print(f"Created tournament {tournament.tournament_id}")
    elif command == "register":
        tournament = engine.register_competitor(args.tournament_id)
        print(
            f"{tournament.tournament_id}: {tournament.registered_teams}/"
            f"{tournament.max_teams} registered ({tournament.status})"
        )
    elif command == "generate":
        bracket = engine.generate_bracket(
            args.tournament_id, load_competitors(args.competitors)
        )
        print(engine.bracket_snapshot(bracket.bracket_id).render())
    elif command == "submit":
        outcome = engine.submit_result(
            args.match_id,
            args.submitter,
            args.winner,
            args.notes,
            region=args.attest_region,
        )
        print(f"{outcome.status}: {outcome.message}")
        if outcome.status == "rejected":
            return 1
    elif command == "propose":
        match = engine.propose_time(args.match_id, args.proposer, args.when)
        print(f"Proposed {match.proposed_at} for {match.match_id}")
    elif command == "approve":
        match = engine.approve_time(args.match_id, args.approver)
        print(f"Scheduled {match.match_id} at {match.scheduled_at}")
    elif command == "start":
        match = engine.start_match(args.match_id)
        print(f"{match.match_id} is {match.status}")
    elif command == "resolve":
        match, advancement = engine.resolve_conflict(
            args.match_id, args.admin, args.winner, args.notes
        )
        print(
            f"{match.match_id} resolved; "
            f"round {advancement.round}: {advancement.status}"
        )
    elif command == "show":
        print(engine.bracket_snapshot(args.bracket_id).render())
    elif command == "cleanup-duplicates":
        duplicates = engine.cleanup_duplicates(args.bracket_id, execute=args.execute)
        print(
            f"{'Deleted' if args.execute else 'Would delete'} "
            f"{len(duplicates)} duplicate matches"
        )
    return 0


def main(argv: Sequence[str] | None = None, *, table=None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(args.log_level)
    config = read_engine_config()
    if args.host:
        config = replace(
            config, result_hosts=config.result_hosts + parse_hosts(args.host)
        )

    try:
        if table is None:
            table = build_table(args, config)
        storage = TournamentStorage(table)
        engine = TournamentEngine(storage, config=config)
        return run_command(args, engine)
    except TournamentEngineError as exc:
        log.error("%s failed: %s", args.command, exc)
        return 1
    except (ClientError, BotoCoreError) as exc:
        log.error("AWS request failed: %s", exc)
        return 2


if __name__ == "__main__":
    raise SystemExit(main())
