"""HTTP trigger endpoint for Pushr.

``GET /`` lists the deployed revision of every application and
``POST /`` deploys them all. Every request must carry the configured
``token`` as a query or form parameter.
"""

import asyncio
import hmac
import logging
from typing import Callable, Optional

from aiohttp import web

from .config import PushrSettings
from .error_handling import PushrError
from .notifications import get_notifier, send_notifications
from .orchestrator import DeploymentOrchestrator
from .protocols import NotificationSink

logger = logging.getLogger(__name__)

OrchestratorFactory = Callable[[PushrSettings], DeploymentOrchestrator]

SETTINGS_KEY = web.AppKey("settings", PushrSettings)
FACTORY_KEY = web.AppKey("orchestrator_factory", OrchestratorFactory)
NOTIFIER_KEY = web.AppKey("notifier", Optional[NotificationSink])


async def _request_token(request: web.Request) -> Optional[str]:
    token = request.query.get("token")
    if token is None and request.method == "POST" and request.can_read_body:
        if request.content_type == "application/json":
            try:
                body = await request.json()
            except ValueError:
                return None
            token = body.get("token") if isinstance(body, dict) else None
        else:
            token = (await request.post()).get("token")
    return token if isinstance(token, str) else None


@web.middleware
async def token_middleware(request: web.Request, handler):
    """Reject requests that do not carry the configured token."""
    expected = request.app[SETTINGS_KEY].token
    if not expected:
        return web.Response(status=404, text="Not configured\n")

    token = await _request_token(request)
    if token is None or not hmac.compare_digest(token.encode(), expected.encode()):
        logger.warning(f"Rejected {request.method} {request.path} with bad token")
        return web.Response(status=403, text="You did wrong.\n")

    return await handler(request)


async def info_handler(request: web.Request) -> web.Response:
    orchestrator = request.app[FACTORY_KEY](request.app[SETTINGS_KEY])
    try:
        summaries = await asyncio.to_thread(orchestrator.info)
    except PushrError as e:
        logger.error(f"Cannot list applications: {e}")
        return web.json_response({"success": False, "output": str(e)}, status=500)

    return web.json_response(
        {
            "name": request.app[SETTINGS_KEY].name,
            "applications": [summary.model_dump() for summary in summaries],
        }
    )


async def deploy_handler(request: web.Request) -> web.Response:
    orchestrator = request.app[FACTORY_KEY](request.app[SETTINGS_KEY])
    try:
        result = await asyncio.to_thread(orchestrator.deploy_all)
    except PushrError as e:
        logger.error(f"Deploy aborted: {e}")
        return web.json_response({"success": False, "output": str(e)}, status=500)

    notifier = request.app[NOTIFIER_KEY]
    if notifier is not None:
        await send_notifications(notifier, result.notifications)

    return web.json_response(
        {"success": result.success, "output": result.log},
        status=200 if result.success else 500,
    )


def create_app(
    settings: PushrSettings,
    orchestrator_factory: Optional[OrchestratorFactory] = None,
    notifier: Optional[NotificationSink] = None,
) -> web.Application:
    """Build the aiohttp application serving the trigger endpoint."""
    app = web.Application(middlewares=[token_middleware])
    app[SETTINGS_KEY] = settings
    app[FACTORY_KEY] = orchestrator_factory or DeploymentOrchestrator.from_settings
    app[NOTIFIER_KEY] = (
        notifier if notifier is not None else get_notifier(settings.notification)
    )
    app.router.add_get("/", info_handler)
    app.router.add_post("/", deploy_handler)
    return app


def serve(settings: PushrSettings, host: str = "127.0.0.1", port: int = 4567) -> None:
    logger.info(f"Serving {len(settings.applications)} application(s) on {host}:{port}")
    web.run_app(create_app(settings), host=host, port=port, print=None)
