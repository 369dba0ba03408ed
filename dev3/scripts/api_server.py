#!/usr/bin/env python3
"""
Dev3 API Server - HTTP interface for deliberation and the autonomous engine.

Usage:
    # Start server
    dev3 serve --port 8080

    # Or build programmatically
    from dev3.scripts.api_server import create_app
    app = create_app(service, engine, config)

Endpoints:
    GET    /api/models                        - Voters and their roles
    POST   /api/decisions                     - Create a decision
    GET    /api/decisions                     - List decisions (newest first)
    GET    /api/decisions/{id}                - Get a decision
    PATCH  /api/decisions/{id}                - Update descriptive fields
    DELETE /api/decisions/{id}                - Delete a decision
    POST   /api/decisions/{id}/responses      - Record one voter's vote
    GET    /api/decisions/{id}/responses      - List votes
    POST   /api/decisions/{id}/consensus      - Compute consensus from recorded votes
    GET    /api/decisions/{id}/consensus      - Get consensus
    POST   /api/decisions/{id}/deliberate     - Ask all voters and reach consensus
    POST   /api/deliberate                    - Create and deliberate in one step
    GET    /api/activity                      - Activity log (newest first)
    GET    /api/stats                         - Aggregate counts
    GET    /api/health                        - Health check
    GET    /api/wallet                        - Wallet and token state
    GET    /api/autonomous/status             - Engine status with wallet state
    GET    /api/autonomous/decisions          - Autonomous history
    POST   /api/autonomous/start|stop|cycle   - Engine control
"""

import argparse
from contextlib import asynccontextmanager
from typing import List, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from pydantic import BaseModel, Field

from dev3 import __version__
from dev3.config import Dev3Config
from dev3.core.errors import (
    AlreadyDeliberatedError, DecisionNotFoundError, DecisionValidationError,
    DeliberationFailed, MissingVotesError,
)
from dev3.core.models import VOTER_ORDER, utc_now_iso
from dev3.core.voters import VOTER_ROLES
from dev3.modes.autonomous import AutonomousEngine
from dev3.modes.deliberation import DeliberationService

# ============================================================================
# Pydantic Models for API
# ============================================================================
#
# Fields are loose here; InputValidator reports field-level problems.


class DecisionRequest(BaseModel):
    """Request body for creating a decision."""
    title: Optional[str] = Field(None, description="Short title of the proposal")
    description: Optional[str] = Field(None, description="What is being decided")
    category: Optional[str] = Field(None, description="architecture, feature, refactor, security, performance, dependency, other")
    priority: Optional[str] = Field(None, description="low, medium, high, critical")
    context: Optional[str] = Field(None, description="Additional context for the voters")


class DecisionUpdateRequest(BaseModel):
    """Partial update; only supplied fields change."""
    title: Optional[str] = None
    description: Optional[str] = None
    category: Optional[str] = None
    priority: Optional[str] = None
    context: Optional[str] = None


class VoteRequest(BaseModel):
    """Request body for recording one voter's vote by hand."""
    model: Optional[str] = Field(None, description="grok, chatgpt or claude")
    vote: Optional[str] = Field(None, description="approve, reject or abstain")
    reasoning: Optional[str] = None
    confidence: Optional[float] = Field(None, description="0-100")
    risks: Optional[List[str]] = None
    recommendations: Optional[List[str]] = None


# ============================================================================
# Error Mapping
# ============================================================================

def _install_error_handlers(app: FastAPI):

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        details = [
            {'loc': list(err.get('loc', ())), 'msg': err.get('msg'), 'type': err.get('type')}
            for err in exc.errors()
        ]
        return JSONResponse(status_code=400, content={'error': 'Validation failed', 'details': details})

    @app.exception_handler(DecisionValidationError)
    async def decision_validation_handler(request: Request, exc: DecisionValidationError):
        return JSONResponse(status_code=400, content={'error': 'Validation failed', 'details': exc.violations})

    @app.exception_handler(DecisionNotFoundError)
    async def not_found_handler(request: Request, exc: DecisionNotFoundError):
        return JSONResponse(status_code=404, content={'error': 'Decision not found'})

    @app.exception_handler(MissingVotesError)
    async def missing_votes_handler(request: Request, exc: MissingVotesError):
        return JSONResponse(status_code=400, content={
            'error': 'Cannot reach consensus',
            'message': str(exc),
            'responded': [v.value for v in exc.responded],
            'missing': [v.value for v in exc.missing],
        })

    @app.exception_handler(AlreadyDeliberatedError)
    async def already_deliberated_handler(request: Request, exc: AlreadyDeliberatedError):
        return JSONResponse(status_code=400, content={
            'error': 'Already deliberated',
            'message': str(exc),
            'consensus': exc.consensus.to_dict() if exc.consensus else None,
        })

    @app.exception_handler(DeliberationFailed)
    async def deliberation_failed_handler(request: Request, exc: DeliberationFailed):
        return JSONResponse(status_code=500, content={'error': 'Deliberation failed', 'message': exc.message})


# ============================================================================
# API Application
# ============================================================================

def create_app(
    service: DeliberationService,
    engine: AutonomousEngine,
    config: Optional[Dev3Config] = None,
) -> FastAPI:
    """Build the API around an existing service and engine."""
    config = config or Dev3Config()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan manager."""
        yield
        await engine.shutdown()
        await engine.context_provider.aclose()

    app = FastAPI(
        title="Dev3 API",
        description="Three-voter consensus and autonomous decision engine",
        version=__version__,
        lifespan=lifespan
    )

    # CORS middleware for browser access
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    _install_error_handlers(app)

    async def wallet_state() -> dict:
        provider = engine.context_provider
        token = provider.get_token()
        balance = await provider.get_balance()
        return {
            'wallet': {'publicKey': provider.wallet_public_key},
            'token': token.to_dict() if token else None,
            'balance': balance.to_dict(),
        }

    # ------------------------------------------------------------------
    # Voters
    # ------------------------------------------------------------------

    @app.get("/api/models")
    async def list_models():
        return {
            'models': [v.value for v in VOTER_ORDER],
            'roles': {v.value: VOTER_ROLES[v].to_dict() for v in VOTER_ORDER},
        }

    # ------------------------------------------------------------------
    # Decisions
    # ------------------------------------------------------------------

    @app.post("/api/decisions", status_code=201)
    async def create_decision(request: DecisionRequest):
        decision = service.create_decision(request.model_dump(exclude_unset=True))
        return decision.to_dict()

    @app.get("/api/decisions")
    async def list_decisions():
        return [d.to_dict() for d in service.list_decisions()]

    @app.get("/api/decisions/{decision_id}")
    async def get_decision(decision_id: str):
        return service.get_decision(decision_id).to_dict()

    @app.patch("/api/decisions/{decision_id}")
    async def update_decision(decision_id: str, request: DecisionUpdateRequest):
        return service.update_decision(decision_id, request.model_dump(exclude_unset=True)).to_dict()

    @app.delete("/api/decisions/{decision_id}", status_code=204)
    async def delete_decision(decision_id: str):
        service.delete_decision(decision_id)
        return Response(status_code=204)

    # ------------------------------------------------------------------
    # Votes and consensus
    # ------------------------------------------------------------------

    @app.post("/api/decisions/{decision_id}/responses", status_code=201)
    async def record_vote(decision_id: str, request: VoteRequest):
        return service.record_vote(decision_id, request.model_dump(exclude_unset=True)).to_dict()

    @app.get("/api/decisions/{decision_id}/responses")
    async def get_votes(decision_id: str):
        return [v.to_dict() for v in service.get_votes(decision_id)]

    @app.post("/api/decisions/{decision_id}/consensus", status_code=201)
    async def reach_consensus(decision_id: str):
        return service.reach_consensus(decision_id).to_dict()

    @app.get("/api/decisions/{decision_id}/consensus")
    async def get_consensus(decision_id: str):
        consensus = service.get_consensus(decision_id)
        if consensus is None:
            return JSONResponse(status_code=404, content={'error': 'No consensus reached yet'})
        return consensus.to_dict()

    # ------------------------------------------------------------------
    # Deliberation
    # ------------------------------------------------------------------

    @app.post("/api/decisions/{decision_id}/deliberate", status_code=201)
    async def deliberate(decision_id: str):
        result = await service.deliberate(decision_id)
        return result.to_dict()

    @app.post("/api/deliberate", status_code=201)
    async def create_and_deliberate(request: DecisionRequest):
        result = await service.create_and_deliberate(request.model_dump(exclude_unset=True))
        return result.to_dict()

    # ------------------------------------------------------------------
    # Reporting
    # ------------------------------------------------------------------

    @app.get("/api/activity")
    async def list_activity():
        return [entry.to_dict() for entry in service.list_activity()]

    @app.get("/api/stats")
    async def stats():
        return service.compute_stats()

    @app.get("/api/health")
    async def health_check():
        return {
            'status': 'healthy',
            'service': 'dev3-api',
            'timestamp': utc_now_iso(),
            'autonomousEngine': engine.status(),
        }

    @app.get("/api/wallet")
    async def wallet():
        return await wallet_state()

    # ------------------------------------------------------------------
    # Autonomous engine
    # ------------------------------------------------------------------

    @app.get("/api/autonomous/status")
    async def autonomous_status():
        state = await wallet_state()
        return {
            'engine': engine.status(),
            'wallet': state['wallet'],
            'token': state['token'],
            'balance': state['balance'],
        }

    @app.get("/api/autonomous/decisions")
    async def autonomous_decisions():
        return [d.to_dict() for d in engine.decisions()]

    @app.post("/api/autonomous/start")
    async def autonomous_start():
        started = engine.start(config.cycle_interval_ms)
        message = "Autonomous engine started" if started else "Autonomous engine already running"
        return {'message': message, 'interval': engine.state.interval_ms, 'started': started}

    @app.post("/api/autonomous/stop")
    async def autonomous_stop():
        stopped = engine.stop()
        message = "Autonomous engine stopped" if stopped else "Autonomous engine was not running"
        return {'message': message, 'stopped': stopped}

    @app.post("/api/autonomous/cycle")
    async def autonomous_cycle():
        decision = await engine.run_cycle()
        return decision.to_dict()

    return app


def create_default_app() -> FastAPI:
    """App built from dev3.config.yaml. Used as a uvicorn factory."""
    from dev3.scripts.cli import build_engine, build_service

    config = Dev3Config.from_file(Dev3Config.default_path())
    return create_app(build_service(config), build_engine(config), config)


# ============================================================================
# CLI Entry Point
# ============================================================================

def main():
    """Run the API server."""
    parser = argparse.ArgumentParser(description='Dev3 API Server')
    parser.add_argument('--host', default='127.0.0.1', help='Host to bind to')
    parser.add_argument('--port', type=int, default=8080, help='Port to bind to')
    parser.add_argument('--reload', action='store_true', help='Enable auto-reload')

    args = parser.parse_args()

    import uvicorn
    uvicorn.run(
        "dev3.scripts.api_server:create_default_app",
        factory=True,
        host=args.host,
        port=args.port,
        reload=args.reload
    )


if __name__ == '__main__':
    main()
