"""
Module: tribunal/main.py
Description: HTTP service for the arbitration workflow
API: POST /disputes, GET/PUT /disputes/{id}, POST /disputes/{id}/response,
     GET /disputes/{id}/votes, POST /disputes/{id}/votes/{agree|disagree},
     POST /disputes/{id}/execute, POST /auth/logout, GET /health
"""

import argparse
import logging
from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from fastapi import Depends, FastAPI, Request, Response, status
from fastapi.responses import JSONResponse
from fastapi.security import HTTPAuthorizationCredentials

from config import TribunalConfig, config

from .api_models import (
    AmendDisputeRequest,
    DisputeResponse,
    ErrorResponse,
    ExecutionResponse,
    FileDisputeRequest,
    HealthCheckResponse,
    RespondRequest,
    VoteLedgerResponse,
)
from .auth import CallerAuthenticator, get_current_caller, security
from .context import SystemClock, TimeSource
from .errors import ArbitrationError
from .identity import AccountDirectory
from .outcomes import OutcomePublisher
from .policy import WindowPolicy
from .storage import RedisBackend, create_backend
from .workflow import WorkflowController

logger = logging.getLogger("tribunal.api")

ERROR_RESPONSES = {
    401: {"description": "Missing or invalid bearer token"},
    403: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
    409: {"model": ErrorResponse},
    413: {"model": ErrorResponse},
    422: {"model": ErrorResponse},
}


class TribunalService:
    """
    Arbitration HTTP service.

    Wraps a WorkflowController: authenticates the caller, stamps each
    request with the trusted time and maps rejections to JSON errors.
    """

    def __init__(
        self,
        controller: WorkflowController,
        authenticator: CallerAuthenticator,
        clock: Optional[TimeSource] = None,
    ):
        self.controller = controller
        self.authenticator = authenticator
        self.clock = clock or SystemClock()

        self.app = FastAPI(
            title="Tribunal",
            description="Community-vote dispute arbitration",
            version="1.0.0",
            lifespan=self._lifespan,
        )
        self.app.state.authenticator = authenticator
        self.app.add_exception_handler(ArbitrationError, self._arbitration_error_handler)
        self._setup_routes()

    @asynccontextmanager
    async def _lifespan(self, app: FastAPI):
        logger.info("Tribunal service starting")
        yield
        await self.controller.backend.close()
        logger.info("Tribunal service stopped")

    async def _arbitration_error_handler(self, request: Request, exc: ArbitrationError) -> JSONResponse:
        return JSONResponse(status_code=exc.http_status, content=exc.to_dict())

    def _setup_routes(self):
        """Setup API routes."""
        app = self.app
        controller = self.controller

        @app.get("/health", response_model=HealthCheckResponse)
        async def health():
            storage_ok = await controller.backend.ping()
            return HealthCheckResponse(
                status="healthy" if storage_ok else "degraded",
                storage="ok" if storage_ok else "unreachable",
                timestamp=self.clock.now(),
            )

        @app.post(
            "/disputes",
            response_model=DisputeResponse,
            status_code=status.HTTP_201_CREATED,
            responses=ERROR_RESPONSES,
        )
        async def file_dispute(body: FileDisputeRequest, caller: int = Depends(get_current_caller)):
            ctx = self.clock.context_for(caller)
            record = await controller.file(
                ctx,
                case_id=body.case_id,
                evidence=body.evidence,
                respondent_name=body.respondent_name,
                linked_reference=body.linked_reference,
                expires_at=body.expires_at,
            )
            return self._dispute_response(record, ctx.now)

        @app.get("/disputes/{case_id}", response_model=DisputeResponse, responses=ERROR_RESPONSES)
        async def get_dispute(case_id: str):
            record = await controller.get(case_id)
            return self._dispute_response(record, self.clock.now())

        @app.put("/disputes/{case_id}", response_model=DisputeResponse, responses=ERROR_RESPONSES)
        async def amend_dispute(
            case_id: str,
            body: AmendDisputeRequest,
            caller: int = Depends(get_current_caller),
        ):
            ctx = self.clock.context_for(caller)
            record = await controller.amend(ctx, case_id, body.evidence, body.expires_at)
            return self._dispute_response(record, ctx.now)

        @app.post("/disputes/{case_id}/response", response_model=DisputeResponse, responses=ERROR_RESPONSES)
        async def respond(
            case_id: str,
            body: RespondRequest,
            caller: int = Depends(get_current_caller),
        ):
            ctx = self.clock.context_for(caller)
            record = await controller.respond(ctx, case_id, body.response_text)
            return self._dispute_response(record, ctx.now)

        @app.get("/disputes/{case_id}/votes", response_model=VoteLedgerResponse, responses=ERROR_RESPONSES)
        async def get_votes(case_id: str):
            ledger = await controller.get_votes(case_id)
            return VoteLedgerResponse.from_ledger(ledger)

        @app.post("/disputes/{case_id}/votes/agree", response_model=VoteLedgerResponse, responses=ERROR_RESPONSES)
        async def vote_agree(case_id: str, caller: int = Depends(get_current_caller)):
            ledger = await controller.vote_agree(self.clock.context_for(caller), case_id)
            return VoteLedgerResponse.from_ledger(ledger)

        @app.post("/disputes/{case_id}/votes/disagree", response_model=VoteLedgerResponse, responses=ERROR_RESPONSES)
        async def vote_disagree(case_id: str, caller: int = Depends(get_current_caller)):
            ledger = await controller.vote_disagree(self.clock.context_for(caller), case_id)
            return VoteLedgerResponse.from_ledger(ledger)

        @app.post("/disputes/{case_id}/execute", response_model=ExecutionResponse, responses=ERROR_RESPONSES)
        async def execute(case_id: str, caller: int = Depends(get_current_caller)):
            result = await controller.execute(self.clock.context_for(caller), case_id)
            return ExecutionResponse.from_result(result)

        @app.post("/auth/logout", status_code=status.HTTP_204_NO_CONTENT, response_class=Response)
        async def logout(
            caller: int = Depends(get_current_caller),
            credentials: HTTPAuthorizationCredentials = Depends(security),
        ):
            self.authenticator.revoke_token(credentials.credentials)
            logger.info(f"Account {caller} logged out")
            return Response(status_code=status.HTTP_204_NO_CONTENT)

    def _dispute_response(self, record, now) -> DisputeResponse:
        return DisputeResponse.from_record(record, self.controller.phase_of(record, now), self.controller.policy)

    def run(self, host: str = "0.0.0.0", port: int = 8000):
        logger.info(f"Starting Tribunal on {host}:{port}")
        uvicorn.run(self.app, host=host, port=port)


def build_service(cfg: TribunalConfig = config, clock: Optional[TimeSource] = None) -> TribunalService:
    """Wire storage, identity, outcome publishing and auth from configuration."""
    backend = create_backend(cfg)
    redis_client = backend.redis if isinstance(backend, RedisBackend) else None
    controller = WorkflowController(
        backend=backend,
        resolver=AccountDirectory(cfg.ACCOUNTS),
        policy=WindowPolicy.from_config(cfg),
        publisher=OutcomePublisher(redis_client=redis_client, channel=cfg.OUTCOME_CHANNEL),
    )
    return TribunalService(controller, CallerAuthenticator.from_config(cfg), clock=clock)


def _setup_logging(level: str):
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )


def main(argv=None):
    """Main entry point: serve the API or mint a caller token."""
    parser = argparse.ArgumentParser(description="Tribunal arbitration service")
    sub = parser.add_subparsers(dest="command")

    serve = sub.add_parser("serve", help="Run the HTTP API")
    serve.add_argument("--host", default=config.API_HOST)
    serve.add_argument("--port", type=int, default=config.API_PORT)

    token = sub.add_parser("token", help="Issue an access token for an account id")
    token.add_argument("account_id", type=int)

    args = parser.parse_args(argv)
    _setup_logging(config.LOG_LEVEL)

    if args.command == "token":
        print(CallerAuthenticator.from_config(config).issue_token(args.account_id))
        return

    host = getattr(args, "host", config.API_HOST)
    port = getattr(args, "port", config.API_PORT)
    build_service(config).run(host=host, port=port)


if __name__ == "__main__":
    main()
