#!/usr/bin/env python3
"""
Dev3 CLI - three-voter deliberation and the autonomous engine from a shell.

Usage:
    dev3 check
    dev3 deliberate --title "..." --description "..." --category security --priority high
    dev3 cycle
    dev3 serve --port 8080
"""

import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import Optional

from dev3.config import Dev3Config
from dev3.core.adapters import build_voters
from dev3.core.emit import emit, set_output_mode
from dev3.core.errors import DecisionValidationError, DeliberationFailed
from dev3.core.models import DecisionCategory, Priority
from dev3.core.storage import MemStorage
from dev3.execution.context import SolanaContextProvider
from dev3.execution.dispatcher import DryRunDispatcher
from dev3.model_providers.factory import get_provider_info
from dev3.modes.autonomous import AutonomousEngine
from dev3.modes.deliberation import DeliberationService


def load_config(path: Optional[str]) -> Dev3Config:
    return Dev3Config.from_file(Path(path) if path else Dev3Config.default_path())


def build_service(config: Dev3Config, storage: Optional[MemStorage] = None) -> DeliberationService:
    return DeliberationService(storage or MemStorage(), build_voters(config))


def build_engine(config: Dev3Config) -> AutonomousEngine:
    if not config.dry_run:
        emit({"type": "status", "msg": "Live trading is not available; dispatching in dry-run mode"})
    context_provider = SolanaContextProvider(
        rpc_url=config.rpc_url,
        wallet_public_key=config.wallet_public_key,
        token=config.token,
    )
    engine = AutonomousEngine(build_voters(config), context_provider, DryRunDispatcher())
    engine.state.interval_ms = config.cycle_interval_ms
    return engine


# ============================================================================
# Setup Check
# ============================================================================

def check_setup(config: Dev3Config) -> dict:
    """Report provider configuration for each voter."""
    return get_provider_info(config)


def print_setup_status(results: dict) -> bool:
    """Print setup validation results in a user-friendly format."""
    print("\n╔══════════════════════════════════════════════════════════════╗")
    print("║              DEV3 SETUP VALIDATION                           ║")
    print("╠══════════════════════════════════════════════════════════════╣")

    all_ok = True
    for voter, status in results.items():
        icon = "✓" if status['available'] else "✗"
        if not status['available']:
            all_ok = False
        print(f"║  {icon} {voter:8} │ {status['model'][:45]:<45} ║")

    print("╠══════════════════════════════════════════════════════════════╣")
    if all_ok:
        print("║  STATUS: All voters ready ✓                                  ║")
    else:
        print("║  STATUS: Cannot run - set AI_INTEGRATIONS_OPENROUTER_API_KEY ║")
    print("╚══════════════════════════════════════════════════════════════╝\n")

    return all_ok


# ============================================================================
# Commands
# ============================================================================

def cmd_check(args, config: Dev3Config) -> int:
    return 0 if print_setup_status(check_setup(config)) else 1


def cmd_deliberate(args, config: Dev3Config) -> int:
    context = args.context
    if args.context_file:
        context_path = Path(args.context_file)
        if not context_path.exists():
            emit({'type': 'error', 'msg': f'Context file not found: {context_path}'})
            return 1
        context = context_path.read_text(encoding='utf-8')

    payload = {
        'title': args.title,
        'description': args.description,
        'category': args.category,
        'priority': args.priority,
        'context': context,
    }

    service = build_service(config)
    try:
        result = asyncio.run(service.create_and_deliberate(payload))
    except DecisionValidationError as e:
        emit({'type': 'error', 'msg': 'Input validation failed - request rejected', 'violations': e.violations})
        return 1
    except DeliberationFailed as e:
        emit({'type': 'error', 'msg': f'Deliberation failed: {e.message}', 'decision_id': e.decision_id})
        return 1

    if args.output == 'audit':
        print(json.dumps(result.to_dict(), indent=2))
    return 0


def cmd_cycle(args, config: Dev3Config) -> int:
    engine = build_engine(config)

    async def run_once():
        try:
            return await engine.run_cycle()
        finally:
            await engine.context_provider.aclose()

    decision = asyncio.run(run_once())
    if args.output == 'audit':
        print(json.dumps(decision.to_dict(), indent=2))
    return 1 if decision.result and decision.result.startswith('ERROR:') else 0


def cmd_serve(args, config: Dev3Config) -> int:
    import uvicorn
    from dev3.scripts.api_server import create_app

    app = create_app(build_service(config), build_engine(config), config)
    uvicorn.run(app, host=args.host, port=args.port)
    return 0


# ============================================================================
# CLI
# ============================================================================

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description='Dev3 - three-voter consensus and autonomous decisions')
    parser.add_argument('--config', help='Path to dev3.config.yaml')
    parser.add_argument(
        '--human',
        action='store_true',
        default=False,
        help='Human-readable output instead of JSON (recommended for interactive use)'
    )
    subparsers = parser.add_subparsers(dest='command', required=True)

    subparsers.add_parser('check', help='Validate voter configuration')

    deliberate = subparsers.add_parser('deliberate', help='Create a decision and deliberate on it')
    deliberate.add_argument('--title', '-t', required=True)
    deliberate.add_argument('--description', '-d', required=True)
    deliberate.add_argument('--category', default='other', choices=[c.value for c in DecisionCategory])
    deliberate.add_argument('--priority', default='medium', choices=[p.value for p in Priority])
    deliberate.add_argument('--context', '-c', help='Additional context for the voters')
    deliberate.add_argument('--context-file', '-f', help='Path to a file to use as context')
    deliberate.add_argument('--output', default='standard', choices=['standard', 'audit'])

    cycle = subparsers.add_parser('cycle', help='Run one autonomous cycle')
    cycle.add_argument('--output', default='standard', choices=['standard', 'audit'])

    serve = subparsers.add_parser('serve', help='Run the HTTP API')
    serve.add_argument('--host', default='127.0.0.1', help='Host to bind to')
    serve.add_argument('--port', type=int, default=8080, help='Port to bind to')

    return parser


COMMANDS = {
    'check': cmd_check,
    'deliberate': cmd_deliberate,
    'cycle': cmd_cycle,
    'serve': cmd_serve,
}


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    set_output_mode(human=args.human)
    config = load_config(args.config)

    sys.exit(COMMANDS[args.command](args, config))


if __name__ == '__main__':
    main()
