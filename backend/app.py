from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from starlette.concurrency import run_in_threadpool
from pydantic import BaseModel
from typing import Optional, List
import logging
import socket
from datetime import datetime, timezone

import config
import lan_discovery
import pihole
from errors import DiscoveryError, InvalidHostError, InvalidUrlError, PiholeError, ValidationError
from models import Device, PiholeStats


logging.basicConfig(
    level=config.get_log_level(),
    format="%(asctime)s %(levelname)-8s %(name)s: %(message)s",
)
logger = logging.getLogger("netscene")

logger.info("[config] .env path=%s exists=%s", config.env_path(), config.env_path().exists())
logger.info("Starting NetScene backend")

app = FastAPI(title="NetScene API", version="1.0.0")

# CORS設定
app.add_middleware(
    CORSMiddleware,
    allow_origins=config.get_cors_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


class PiholeStatsRequest(BaseModel):
    host: Optional[str] = None
    password: Optional[str] = None


def _status_for(err: PiholeError) -> int:
    if isinstance(err, (InvalidHostError, InvalidUrlError)):
        return 400
    if isinstance(err, ValidationError):
        return 422
    return 502


@app.get("/api/health")
async def health():
    """疎通確認"""
    return {
        "status": "ok",
        "hostname": socket.gethostname(),
        "time": datetime.now(timezone.utc).isoformat(),
    }


@app.get("/api/devices", response_model=List[Device])
async def scan_network():
    """ARP テーブルから近隣機器 (ip/mac) を返す。"""
    try:
        return await run_in_threadpool(lan_discovery.discover_devices)
    except DiscoveryError as e:
        logger.error("Network scan failed: %s", e)
        raise HTTPException(status_code=500, detail=str(e))


@app.post("/api/pihole/stats", response_model=PiholeStats)
async def pihole_stats(body: PiholeStatsRequest):
    """Pi-hole の統計を取得する (新 API → 旧 API の順に試行)。"""
    host = (body.host or "").strip() or config.get_pihole_host()
    if body.password is None:
        password = config.get_pihole_password()
    else:
        # 空欄は「パスワードなし」として扱う
        password = body.password.strip() or None

    try:
        return await run_in_threadpool(pihole.get_pihole_stats, host, password)
    except PiholeError as e:
        logger.error("Failed to fetch Pi-hole stats from %s: %s", host, e)
        raise HTTPException(status_code=_status_for(e), detail=str(e))


if __name__ == '__main__':
    import uvicorn
    uvicorn.run(app, host=config.get_bind_host(), port=config.get_bind_port())
