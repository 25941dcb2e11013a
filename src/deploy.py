"""
Command line for the service lifecycle: publish a trained model, inspect it,
score a record, update the bound model and retire the service.

    python -m src.deploy publish credit_default 1.0.0 --model_uri runs:/<run_id>/model
    python -m src.deploy consume credit_default 1.0.0 --record record.json
    python -m src.deploy update credit_default 1.0.0 --model_uri models/credit_default_v2
    python -m src.deploy delete credit_default 1.0.0
"""

import argparse
import json
import logging
import sys
from typing import List, Optional

from src.client import DeployClient
from src.config import Settings, configure_logging
from src.exceptions import DeploymentError

logger = logging.getLogger(__name__)


def build_parser(settings: Settings) -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="deploy", description="Manage published scoring services")
    p.add_argument("--url", default=settings.deploy_url)
    p.add_argument("--username", default=settings.deploy_username)
    p.add_argument("--password", default=settings.deploy_password)

    sub = p.add_subparsers(dest="command", required=True)

    sub.add_parser("list")

    for command in ("get", "swagger", "delete"):
        sp = sub.add_parser(command)
        sp.add_argument("name")
        sp.add_argument("version")

    publish = sub.add_parser("publish")
    publish.add_argument("name")
    publish.add_argument("version")
    publish.add_argument("--model_uri", required=True)
    publish.add_argument("--description", default="")

    update = sub.add_parser("update")
    update.add_argument("name")
    update.add_argument("version")
    update.add_argument("--model_uri", required=True)
    update.add_argument("--expected_revision", type=int, default=None)

    consume = sub.add_parser("consume")
    consume.add_argument("name")
    consume.add_argument("version")
    consume.add_argument("--record", required=True, help="Path to a JSON file holding one record")

    return p


def run(args: argparse.Namespace, client: DeployClient) -> object:
    if args.command == "list":
        return [h.info for h in client.list_services()]
    if args.command == "get":
        return client.get_service(args.name, args.version).info
    if args.command == "swagger":
        return client.get_service(args.name, args.version).swagger()
    if args.command == "publish":
        return client.publish_service(args.name, args.version, args.model_uri, args.description).info
    if args.command == "update":
        handle = client.update_service(
            args.name, args.version, args.model_uri, expected_revision=args.expected_revision
        )
        return handle.info
    if args.command == "consume":
        with open(args.record) as f:
            record = json.load(f)
        scored = client.get_service(args.name, args.version).consume(record)
        return json.loads(scored.to_json(orient="records"))
    if args.command == "delete":
        client.delete_service(args.name, args.version)
        return {"deleted": f"{args.name}/{args.version}"}
    raise ValueError(f"Unknown command: {args.command}")


def main(argv: Optional[List[str]] = None, client: Optional[DeployClient] = None) -> int:
    settings = Settings.from_env()
    configure_logging(settings.log_level)
    args = build_parser(settings).parse_args(argv)

    owned = None
    try:
        if client is None:
            client = owned = DeployClient(args.url, args.username, args.password)
        result = run(args, client)
    except (DeploymentError, OSError, ValueError) as e:
        logger.error(f"{args.command} failed: {e}")
        return 1
    finally:
        if owned is not None:
            owned.close()

    print(json.dumps(result, indent=2, default=str))
    return 0


if __name__ == "__main__":
    sys.exit(main())
