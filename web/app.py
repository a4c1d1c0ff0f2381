"""FastAPI web host for the CHIP-8 interpreter."""

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
from pydantic import BaseModel, Field
from typing import Optional
from contextlib import asynccontextmanager
from pathlib import Path
import logging
import threading
import sys
import os

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from chip8 import Interpreter, MachineOptions, ProgramTooLarge, EngineTimeout


logger = logging.getLogger(__name__)

STATIC_DIR = Path(__file__).parent.parent / "static"


# Request/Response models
class MachineOptionsModel(BaseModel):
    debug_mode: bool = False
    debug_delay: float = Field(default=0.1, ge=0.0, le=5.0)
    key_poll_interval: float = Field(default=0.001, gt=0.0, le=1.0)
    stop_timeout: float = Field(default=1.0, gt=0.0, le=30.0)
    seed: Optional[int] = None
    reverse_subn: bool = False


class LoadRequest(BaseModel):
    program: Optional[list[int]] = None
    program_hex: Optional[str] = None
    options: Optional[MachineOptionsModel] = None
    autostart: bool = False


class KeyRequest(BaseModel):
    pressed: bool


class TickRequest(BaseModel):
    elapsed_ms: int = Field(ge=0, le=60000)


class DebugRequest(BaseModel):
    enabled: bool


class DisplayResponse(BaseModel):
    width: int
    height: int
    geometry_version: int
    rows: list[str]


class HostSession:
    """The interpreter plus the collaborators a browser can't provide."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self.interpreter: Optional[Interpreter] = None
        self.beeps = 0
        self.geometry_version = 0

    def _on_beep(self) -> None:
        with self._lock:
            self.beeps += 1

    def _on_geometry(self, width: int, height: int) -> None:
        with self._lock:
            self.geometry_version += 1
        logger.info("Display geometry changed to %dx%d", width, height)

    def load(self, program: bytes, options: MachineOptions) -> Interpreter:
        interpreter = Interpreter(options, beep=self._on_beep)
        interpreter.load(program)
        interpreter.display.add_listener(self._on_geometry)
        old = self.interpreter
        if old is not None:
            old.stop(wait=True)
        with self._lock:
            self.interpreter = interpreter
            self.beeps = 0
            self.geometry_version = 0
        return interpreter

    def require(self) -> Interpreter:
        if self.interpreter is None:
            raise HTTPException(status_code=409, detail="No program loaded")
        return self.interpreter

    def shutdown(self) -> None:
        if self.interpreter is not None:
            self.interpreter.stop(wait=True)
        self.interpreter = None


session = HostSession()


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    session.shutdown()


# Create FastAPI app
app = FastAPI(
    title="CHIP-8 Interpreter",
    description="Web host for running CHIP-8 programs",
    version="0.1.0",
    lifespan=lifespan,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _program_bytes(request: LoadRequest) -> bytes:
    """Convert the request's byte list or hex string into program bytes."""
    if request.program is not None:
        if any(not 0 <= b <= 0xFF for b in request.program):
            raise HTTPException(status_code=400, detail="Program bytes must be 0-255")
        return bytes(request.program)
    if request.program_hex is not None:
        try:
            return bytes.fromhex(request.program_hex)
        except ValueError:
            raise HTTPException(status_code=400, detail="Invalid program hex")
    raise HTTPException(status_code=400, detail="Either program or program_hex is required")


@app.post("/api/load")
async def load_program(request: LoadRequest):
    """Load a program into a fresh interpreter.

    Args:
        request: Program bytes and engine options

    Returns:
        Interpreter state after loading
    """
    program = _program_bytes(request)

    opts = request.options or MachineOptionsModel()
    machine_opts = MachineOptions(
        debug_mode=opts.debug_mode,
        debug_delay=opts.debug_delay,
        key_poll_interval=opts.key_poll_interval,
        stop_timeout=opts.stop_timeout,
        seed=opts.seed,
        reverse_subn=opts.reverse_subn,
    )

    try:
        interpreter = session.load(program, machine_opts)
    except ProgramTooLarge as e:
        raise HTTPException(status_code=400, detail=e.message)

    if request.autostart:
        interpreter.start()
    return interpreter.get_state()


@app.post("/api/start")
async def start():
    interpreter = session.require()
    interpreter.start()
    return interpreter.get_state()


@app.post("/api/stop")
async def stop():
    interpreter = session.require()
    try:
        interpreter.stop(wait=True)
    except EngineTimeout as e:
        raise HTTPException(status_code=409, detail=e.message)
    return interpreter.get_state()


@app.post("/api/restart")
async def restart():
    interpreter = session.require()
    try:
        interpreter.restart()
    except EngineTimeout as e:
        raise HTTPException(status_code=409, detail=e.message)
    return interpreter.get_state()


@app.post("/api/debug")
async def set_debug(request: DebugRequest):
    interpreter = session.require()
    interpreter.debug_mode = request.enabled
    return interpreter.get_state()


@app.post("/api/keys/{key}")
async def set_key(key: int, request: KeyRequest):
    """Press or release one of the 16 logical keys."""
    interpreter = session.require()
    if not 0 <= key <= 0xF:
        raise HTTPException(status_code=400, detail=f"Invalid key: {key}")
    interpreter.set_key(key, request.pressed)
    return {"key": key, "pressed": request.pressed}


@app.post("/api/tick")
async def tick(request: TickRequest):
    """Advance the delay and sound timers by elapsed host time."""
    interpreter = session.require()
    interpreter.update(request.elapsed_ms)
    return {
        "delay_timer": interpreter.cpu.delay_timer,
        "sound_timer": interpreter.cpu.sound_timer,
        "beeps": session.beeps,
    }


@app.get("/api/display", response_model=DisplayResponse)
async def display():
    interpreter = session.require()
    snapshot = interpreter.display.snapshot()
    return DisplayResponse(
        width=snapshot.width,
        height=snapshot.height,
        geometry_version=session.geometry_version,
        rows=snapshot.rows(),
    )


@app.get("/api/state")
async def state():
    interpreter = session.require()
    result = interpreter.get_state()
    result["beeps"] = session.beeps
    return result


# Mount static files AFTER API routes to prevent shadowing
if STATIC_DIR.exists():
    app.mount("/", StaticFiles(directory=str(STATIC_DIR), html=True), name="static")


if __name__ == "__main__":
    import uvicorn
    logging.basicConfig(level=logging.INFO)
    uvicorn.run(app, host="0.0.0.0", port=8080)
