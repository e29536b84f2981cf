import asyncio
import dataclasses
import logging
import os
import pathlib
import traceback
from typing import Callable, Dict, Optional

import aiohttp
import yaml
from aiohttp import web

from .charts import ChartStore
from .errors import ErrorCode, InvalidArgument, PayoutsError
from .ledger import PendingPaymentLedger
from .lock import PayoutLock
from .log import initialize_logging
from .reward_schedule import load_networks
from .store.abstract import AbstractPayoutStore
from .store.redis_store import RedisPayoutStore
from .unlocker import evaluate_block
from .util import error_response, obj_to_response

ERROR_STATUS = {
    ErrorCode.INVALID_ARGUMENT: 400,
    ErrorCode.RECORD_MISSING: 404,
    ErrorCode.STORAGE_UNAVAILABLE: 503,
    ErrorCode.DECODE_FAILURE: 500,
}


def allow_cors(response: web.Response) -> web.Response:
    response.headers["Access-Control-Allow-Origin"] = "*"
    return response


def load_pool_config() -> Dict:
    with open(os.getcwd() + "/config.yaml") as f:
        return yaml.safe_load(f)


class PayoutServer:
    def __init__(self, pool_config: Dict, pool_store: Optional[AbstractPayoutStore] = None):
        self.log = logging.getLogger(__name__)
        self.pool_config = pool_config

        redis_config = pool_config.get("redis", {})
        self.store: AbstractPayoutStore = pool_store or RedisPayoutStore(
            redis_config.get("url", "redis://localhost:6379/0"), redis_config.get("socket_timeout", 5.0)
        )
        self.lock = PayoutLock(self.store)
        self.ledger = PendingPaymentLedger(self.store)
        self.charts = ChartStore(self.store)

        self.networks = load_networks(pool_config)
        self.selected_network = pool_config.get("selected_network", "ZetherMainnet")
        if self.selected_network not in self.networks:
            raise InvalidArgument("PayoutServer", self.selected_network, "unknown selected_network")

        server_config = pool_config.get("server", {})
        self.host = server_config.get("server_host", "0.0.0.0")
        self.port = int(server_config.get("server_port", 8080))

    async def start(self):
        await self.store.connect()

    async def stop(self):
        await self.store.close()

    def wrap_http_handler(self, f) -> Callable:
        async def inner(request) -> aiohttp.web.Response:
            try:
                res_object = await f(request)
                if res_object is None:
                    res_object = obj_to_response({})
            except PayoutsError as e:
                self.log.warning(f"Error while handling {request.path}: {e}")
                res_object = error_response(e.code, str(e), ERROR_STATUS.get(e.code, 500))
            except Exception as e:
                tb = traceback.format_exc()
                self.log.warning(f"Error while handling message: {tb}")
                res_object = error_response(ErrorCode.SERVER_EXCEPTION, f"{e}", 500)

            return allow_cors(res_object)

        return inner

    def make_app(self) -> web.Application:
        app = web.Application()
        app.add_routes(
            [
                web.get("/", self.wrap_http_handler(self.index)),
                web.get("/reward", self.wrap_http_handler(self.get_reward)),
                web.get("/payouts/status", self.wrap_http_handler(self.get_payouts_status)),
                web.get("/payments/pending", self.wrap_http_handler(self.get_pending_payments)),
                web.get("/blacklist", self.wrap_http_handler(self.get_blacklist)),
                web.get("/whitelist", self.wrap_http_handler(self.get_whitelist)),
            ]
        )
        return app

    async def index(self, _) -> web.Response:
        return web.Response(text="Pool payouts")

    async def get_reward(self, request_obj) -> web.Response:
        network = request_obj.rel_url.query.get("network", self.selected_network)
        if network not in self.networks:
            raise InvalidArgument("get_reward", network, "unknown network")
        raw_height = request_obj.rel_url.query.get("height")
        try:
            height = int(raw_height)
        except (TypeError, ValueError):
            raise InvalidArgument("get_reward", str(raw_height), "height must be an integer")
        result = evaluate_block(self.networks[network], height)
        return obj_to_response(dataclasses.asdict(result))

    async def get_payouts_status(self, _) -> web.Response:
        return obj_to_response({"locked": await self.lock.is_locked()})

    async def get_pending_payments(self, _) -> web.Response:
        payments = await self.ledger.list_pending_payments()
        payments.sort(key=lambda p: p.address)
        return obj_to_response({"payments": payments})

    async def get_blacklist(self, _) -> web.Response:
        return obj_to_response({"blacklist": await self.charts.get_blacklist()})

    async def get_whitelist(self, _) -> web.Response:
        return obj_to_response({"whitelist": await self.charts.get_whitelist()})


server: Optional[PayoutServer] = None
runner: Optional[aiohttp.web.BaseRunner] = None


async def start_payout_server(pool_store: Optional[AbstractPayoutStore] = None):
    global server
    global runner
    pool_config = load_pool_config()
    initialize_logging("payouts", pool_config["logging"], pathlib.Path(pool_config["logging"]["log_path"]))

    server = PayoutServer(pool_config, pool_store)
    await server.start()

    runner = aiohttp.web.AppRunner(server.make_app(), access_log=None)
    await runner.setup()
    site = aiohttp.web.TCPSite(runner, host=server.host, port=server.port)
    await site.start()

    while True:
        await asyncio.sleep(3600)


async def stop():
    await server.stop()
    await runner.cleanup()


def main():
    try:
        asyncio.run(start_payout_server())
    except KeyboardInterrupt:
        asyncio.run(stop())


if __name__ == "__main__":
    main()
