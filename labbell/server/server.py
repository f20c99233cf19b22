"""
labbell HTTP server - aiohttp edge for the doorbell service.

Routes:
    GET  /api/bootstrap     session token + effective status of every lab
    POST /api/ring          {lab, token} -> publish ring command
    POST /api/lab-status    {lab, status|action:'clear', adminPwd} -> override
    GET  /api/lab-status    ?adminPwd= -> current overrides
    *    /api/labs          410, lab management is configuration-only
    GET  /health            bus and presence status

Handlers translate LabBellError subclasses to their HTTP status and answer
{ok: false, error} bodies; the service owns all state.
"""

from typing import Any, Dict

from aiohttp import web

from labbell.core import DoorbellService, LabBellError
from labsdk.logging import getLogger, setRequestContext, clearRequestContext


class LabBellServer:
    """
    HTTP edge.

    The service's background work (heartbeat subscription, housekeeping)
    follows the aiohttp app lifecycle, so the server can run under AppRunner
    or aiohttp's test server alike.
    """

    def __init__(self, config: Dict[str, Any], service: DoorbellService):
        self.config = config
        self.service = service
        self.log = getLogger()
        self.trustForwardedFor = bool(config.get('trustForwardedFor', False))

        self.app = web.Application(middlewares=[self._requestContextMiddleware])
        self.app.on_startup.append(self._onStartup)
        self.app.on_cleanup.append(self._onCleanup)
        self._setupRoutes()

        self._runner = None
        self._site = None

    def _setupRoutes(self):
        self.app.router.add_get('/health', self.handleHealth)
        self.app.router.add_get('/api/bootstrap', self.handleBootstrap)
        self.app.router.add_post('/api/ring', self.handleRing)
        self.app.router.add_post('/api/lab-status', self.handleSetLabStatus)
        self.app.router.add_get('/api/lab-status', self.handleListLabStatus)
        self.app.router.add_route('*', '/api/labs', self.handleLabsGone)

    async def _onStartup(self, app: web.Application):
        await self.service.start()

    async def _onCleanup(self, app: web.Application):
        await self.service.stop()

    async def start(self):
        """Start listening"""
        self.log.info("[Server] Starting...")

        self._runner = web.AppRunner(self.app)
        await self._runner.setup()

        host = self.config.get('host', '0.0.0.0')
        port = self.config.get('port', 3000)

        self._site = web.TCPSite(self._runner, host, port)
        await self._site.start()

        self.log.info(f"[Server] Listening on http://{host}:{port}")

    async def stop(self):
        self.log.info("[Server] Stopping...")
        if self._site:
            await self._site.stop()
        if self._runner:
            await self._runner.cleanup()
        self.log.info("[Server] Stopped")

    # =========================================================================
    # Helpers
    # =========================================================================

    def clientAddress(self, request: web.Request) -> str:
        """Address a request is attributed to (sessions and rate limiting key on it)"""
        if self.trustForwardedFor:
            forwarded = request.headers.get('X-Forwarded-For', '')
            first = forwarded.split(',')[0].strip()
            if first:
                return first
        return request.remote or 'unknown'

    @web.middleware
    async def _requestContextMiddleware(self, request: web.Request, handler):
        setRequestContext(self.clientAddress(request), f"{request.method} {request.path}")
        try:
            return await handler(request)
        finally:
            clearRequestContext()

    async def _readJson(self, request: web.Request) -> Dict[str, Any]:
        """Request body as a dict; anything unparseable reads as empty"""
        try:
            data = await request.json()
        except ValueError:
            return {}
        return data if isinstance(data, dict) else {}

    def _errorResponse(self, error: LabBellError) -> web.Response:
        return web.json_response(error.toDict(), status=error.status)

    # =========================================================================
    # HTTP Handlers
    # =========================================================================

    async def handleHealth(self, request: web.Request) -> web.Response:
        """Health check endpoint"""
        return web.json_response(self.service.health())

    async def handleBootstrap(self, request: web.Request) -> web.Response:
        return web.json_response(self.service.bootstrap(self.clientAddress(request)))

    async def handleRing(self, request: web.Request) -> web.Response:
        data = await self._readJson(request)
        try:
            result = await self.service.ring(data.get('lab'), data.get('token'), self.clientAddress(request))
        except LabBellError as e:
            if e.status >= 500:
                self.log.error(f"[Server] Ring failed: {e.message}")
            else:
                self.log.info(f"[Server] Ring rejected ({e.status}): {e.message}", lab=data.get('lab'))
            return self._errorResponse(e)
        except Exception as e:
            self.log.error(f"[Server] Ring error: {e}", exc_info=True)
            return web.json_response({'ok': False, 'error': 'Internal error'}, status=500)

        return web.json_response(result.toDict())

    async def handleSetLabStatus(self, request: web.Request) -> web.Response:
        data = await self._readJson(request)
        try:
            return web.json_response(self.service.updateOverride(data))
        except LabBellError as e:
            self.log.warning(f"[Server] Override rejected ({e.status}): {e.message}")
            return self._errorResponse(e)

    async def handleListLabStatus(self, request: web.Request) -> web.Response:
        try:
            return web.json_response(self.service.listOverrides(request.query.get('adminPwd')))
        except LabBellError as e:
            self.log.warning(f"[Server] Override listing rejected ({e.status})")
            return self._errorResponse(e)

    async def handleLabsGone(self, request: web.Request) -> web.Response:
        return web.json_response({'ok': False, 'error': 'Lab management is disabled. Configure labs with LABS.'},
                                 status=410)
