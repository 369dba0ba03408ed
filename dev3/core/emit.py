"""
Event emission for Dev3.

Provides structured event output with:
- Automatic secret redaction
- Human-readable formatting option
"""

import json
import textwrap
import time

from dev3.security.input_validator import InputValidator

# Global InputValidator instance for security
INPUT_VALIDATOR = InputValidator()

# Output mode flag (set by main entry point)
HUMAN_OUTPUT = False  # Set to True for user-friendly CLI output


def set_output_mode(human: bool = False):
    """Configure output mode flag."""
    global HUMAN_OUTPUT
    HUMAN_OUTPUT = human


def emit(event: dict):
    """Emit event with automatic secret redaction."""
    event['ts'] = int(time.time())
    # Redact secrets from output before emission
    redacted_event = INPUT_VALIDATOR.redact_output(event)

    if HUMAN_OUTPUT:
        _emit_human(redacted_event)
    else:
        print(json.dumps(redacted_event, default=str), flush=True)


def _emit_human(event: dict):
    """Format event as human-readable output."""
    event_type = event.get('type', '')

    if event_type == 'status':
        print(f"📋 {event.get('msg', '')}", flush=True)

    # Manual deliberation
    elif event_type == 'deliberation_start':
        print(f"\n🗳️  Deliberating: {event.get('title', '')}", flush=True)

    elif event_type == 'voter_start':
        voter = event.get('voter', 'unknown')
        role = event.get('role', voter)
        print(f"   🤖 {voter.upper()} ({role}) thinking...", flush=True)

    elif event_type == 'voter_complete':
        voter = event.get('voter', 'unknown')
        latency = event.get('latency_ms', 0)
        print(f"   ✅ {voter.upper()} responded ({latency/1000:.1f}s)", flush=True)

    elif event_type == 'voter_error':
        voter = event.get('voter', 'unknown')
        error = event.get('error') or 'unknown error'
        print(f"   ❌ {voter.upper()} failed: {error[:50]}", flush=True)

    elif event_type == 'vote_parse_fallback':
        voter = event.get('voter', 'unknown')
        print(f"   ⚠️  {voter.upper()} response unparseable - recorded as abstain", flush=True)

    elif event_type == 'consensus_reached':
        outcome = event.get('outcome', '')
        kind = 'unanimous' if event.get('unanimity') else 'majority'
        summary = event.get('vote_summary', {})
        print(f"\n{'='*60}", flush=True)
        print(f"🎯 CONSENSUS: {outcome.upper()} ({kind})", flush=True)
        print(f"   approve={summary.get('approve', 0)} reject={summary.get('reject', 0)} "
              f"abstain={summary.get('abstain', 0)}", flush=True)
        print(f"{'='*60}", flush=True)
        reasoning = event.get('reasoning')
        if reasoning:
            for paragraph in reasoning.split('\n\n'):
                print(textwrap.fill(paragraph, width=78), flush=True)
                print(flush=True)

    # Autonomous engine
    elif event_type == 'engine_started':
        print(f"🚀 Autonomous engine started (interval: {event.get('interval_ms', 0)}ms)", flush=True)

    elif event_type == 'engine_already_running':
        print("ℹ️  Autonomous engine already running", flush=True)

    elif event_type == 'engine_stopped':
        print("🛑 Autonomous engine stopped", flush=True)

    elif event_type == 'cycle_start':
        print(f"\n🔄 Autonomous cycle starting...", flush=True)

    elif event_type == 'cycle_context':
        token = event.get('token') or 'none'
        print(f"   💰 {event.get('sol', 0):.4f} SOL, Token: {token}", flush=True)

    elif event_type == 'recommendation':
        voter = event.get('voter', 'unknown')
        print(f"   • {voter}: {event.get('action')} ({event.get('confidence')}%)", flush=True)

    elif event_type == 'cycle_aborted':
        print(f"   ❌ Cycle aborted: {event.get('error', '')}", flush=True)

    elif event_type == 'cycle_complete':
        action = event.get('action', 'hold')
        result = event.get('result') or ''
        print(f"   🎯 Consensus: {action} - {result}", flush=True)

    elif event_type == 'error':
        print(f"⚠️  Error: {event.get('msg', '')}", flush=True)

    # Default: silent for unhandled events
    else:
        pass
