import hmac
import logging

from sanic import Sanic, response, Request
import aiohttp
from gidgethub import aiohttp as gh_aiohttp
from sanic.log import logger
import sanic.log
import cachetools
from prometheus_client import core
from prometheus_client.exposition import CONTENT_TYPE_LATEST, generate_latest

from jobtrigger import config
from jobtrigger.catalog import CatalogAgent
from jobtrigger.github import GitHubReporter, NoopReporter
from jobtrigger.github.api import API
from jobtrigger.job.client import DryRunJobClient, HttpJobClient
from jobtrigger.logger import configure_logging
from jobtrigger.metric import request_counter
from jobtrigger.subscriber import Subscriber
from jobtrigger.subscriber.envelope import PushMessage


def token_valid(expected, given) -> bool:
    if expected is None:
        return True
    if given is None:
        return False
    return hmac.compare_digest(expected.encode(), given.encode())


async def process_push(app, body: bytes) -> response.HTTPResponse:
    try:
        msg = PushMessage.from_json(body)
    except ValueError as e:
        logger.warning("Malformed push request: %s", e)
        return response.empty(400)

    try:
        await app.ctx.subscriber.receive(msg, msg.subscription)
    except Exception:
        # already logged and nacked by the subscriber
        logger.debug("Message %s nacked", msg.id)

    if msg.acked:
        return response.empty(204)
    return response.empty(503)


def create_app():

    app = Sanic("jobtrigger")
    app.update_config(config)

    sanic.log.logger.handlers = []
    configure_logging(logging.getLogger("jobtrigger"), sanic.log.logger)

    app.ctx.cache = cachetools.LRUCache(maxsize=500)
    app.ctx.catalog_agent = CatalogAgent.from_path(config.CATALOG_PATH)
    logger.info("Catalog loaded: %s", app.ctx.catalog_agent.config().summary())

    @app.listener("before_server_start")
    async def init(app):
        logger.debug("Creating aiohttp session")
        app.ctx.aiohttp_session = aiohttp.ClientSession()

        if config.DRY_RUN:
            job_client = DryRunJobClient()
        elif config.JOB_API_URL is not None:
            job_client = HttpJobClient(
                app.ctx.aiohttp_session, config.JOB_API_URL, config.JOB_API_TIMEOUT
            )
        else:
            raise RuntimeError("JOB_API_URL is required unless DRY_RUN is set")

        if config.GITHUB_TOKEN is not None:
            gh = gh_aiohttp.GitHubAPI(
                app.ctx.aiohttp_session,
                __name__,
                oauth_token=config.GITHUB_TOKEN,
                cache=app.ctx.cache,
            )
            reporter = GitHubReporter(API(gh))
        else:
            logger.info("No GITHUB_TOKEN configured, status reporting disabled")
            reporter = NoopReporter()

        app.ctx.subscriber = Subscriber(
            app.ctx.catalog_agent, job_client=job_client, reporter=reporter
        )

    @app.listener("after_server_start")
    async def start_reload(app):
        app.add_task(
            app.ctx.catalog_agent.watch(config.CATALOG_RELOAD_INTERVAL),
            name="catalog_reload",
        )

    @app.listener("before_server_stop")
    async def shutdown(app):
        await app.cancel_task("catalog_reload", raise_exception=False)
        await app.ctx.aiohttp_session.close()

    @app.on_request
    async def on_request(request: Request):
        if request.path == "/metrics":
            return
        request_counter.labels(path=request.path).inc()

    @app.get("/status")
    async def status(request):
        logger.debug("status check")
        return response.text("ok")

    @app.post("/push")
    async def push(request):
        logger.debug("Push delivery received")
        if not token_valid(config.PUSH_VERIFICATION_TOKEN, request.args.get("token")):
            logger.warning("Push delivery with invalid token rejected")
            return response.empty(403)
        return await process_push(app, request.body)

    @app.get("/metrics")
    async def metrics(request):
        data = generate_latest(core.REGISTRY)
        return response.raw(data, content_type=CONTENT_TYPE_LATEST)

    return app
