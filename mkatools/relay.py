from __future__ import annotations

import subprocess
from concurrent.futures import FIRST_EXCEPTION, ThreadPoolExecutor, wait
from dataclasses import dataclass
from typing import BinaryIO, Tuple

from mkatools.errors import ExternalProcessError
from mkatools.logging_utils import get_logger

log = get_logger(__name__)

DEFAULT_BUFFER_SIZE = 1024 * 1024


@dataclass(frozen=True)
class Stage:
    """An external process acting as one link of a byte pipeline."""

    name: str
    process: subprocess.Popen


def relay(source: BinaryIO, sink: BinaryIO, buffer_size: int = DEFAULT_BUFFER_SIZE,
          close_sink: bool = True) -> int:
    """Copy ``source`` into ``sink`` in ``buffer_size`` chunks until end of stream.

    Short writes to an unbuffered sink are resumed. The sink is closed
    afterwards (unless ``close_sink`` is false) so a downstream process sees
    end of input. Returns the number of bytes copied.
    """
    transferred = 0
    try:
        while True:
            chunk = source.read(buffer_size)
            if not chunk:
                break
            view = memoryview(chunk)
            while view:
                view = view[sink.write(view):]
            transferred += len(chunk)
    finally:
        if close_sink:
            sink.close()
    return transferred


def _kill(stage: Stage) -> bool:
    if stage.process.poll() is None:
        log.warning("killing pipeline stage", extra={"stage": stage.name, "pid": stage.process.pid})
        stage.process.kill()
        return True
    return False


def pipeline(producer: Stage, transformer: Stage, sink: BinaryIO,
             buffer_size: int = DEFAULT_BUFFER_SIZE) -> Tuple[int, int]:
    """Run ``producer | transformer > sink`` with both pipes drained concurrently.

    Neither tool buffers a whole album, so the producer->transformer copy and
    the transformer->sink copy each get their own thread. Both copies are
    joined before either exit status is checked. If one copy fails, any stage
    still running is killed so the other copy reaches end of stream.

    A stage that exited non-zero on its own raises ExternalProcessError named
    after that stage. A failed copy raises ExternalProcessError named after its
    direction (``"producer | transformer"`` or ``"transformer > output"``).
    ``sink`` is flushed but left open. Returns the byte counts of both copies.
    """
    producer_out = producer.process.stdout
    transformer_in = transformer.process.stdin
    transformer_out = transformer.process.stdout
    if producer_out is None or transformer_in is None or transformer_out is None:
        raise ValueError("producer needs a stdout pipe and transformer needs stdin and stdout pipes")

    directions = {
        "upstream": f"{producer.name} | {transformer.name}",
        "downstream": f"{transformer.name} > output",
    }
    killed = set()
    log.debug("pipeline start", extra={"producer": producer.name, "transformer": transformer.name})
    with ThreadPoolExecutor(max_workers=2, thread_name_prefix="relay") as pool:
        copies = {
            "upstream": pool.submit(relay, producer_out, transformer_in, buffer_size),
            "downstream": pool.submit(relay, transformer_out, sink, buffer_size, False),
        }
        done, _ = wait(copies.values(), return_when=FIRST_EXCEPTION)
        if any(f.exception() is not None for f in done):
            killed = {stage.name for stage in (producer, transformer) if _kill(stage)}

    failed = next((d for d, f in copies.items() if f in done and f.exception() is not None), None)
    if failed is None:
        failed = next((d for d, f in copies.items() if f.exception() is not None), None)
    relay_error = copies[failed].exception() if failed else None

    if relay_error is None:
        try:
            sink.flush()
        except OSError as e:
            failed, relay_error = "downstream", e
    producer_out.close()
    transformer_out.close()
    if not transformer_in.closed:
        try:
            transformer_in.close()
        except BrokenPipeError:
            pass
    statuses = [(producer, producer.process.wait()), (transformer, transformer.process.wait())]

    for stage, status in statuses:
        if status != 0 and stage.name not in killed:
            log.error("pipeline stage failed", extra={"stage": stage.name, "returncode": status})
            raise ExternalProcessError(stage.name, status) from relay_error
    if relay_error is not None:
        log.error("pipeline relay failed", extra={"stage": directions[failed], "error": str(relay_error)})
        raise ExternalProcessError(directions[failed], detail=str(relay_error) or type(relay_error).__name__) \
            from relay_error

    into_transformer, into_sink = copies["upstream"].result(), copies["downstream"].result()
    log.info("pipeline done", extra={"relayed": into_transformer, "written": into_sink})
    return into_transformer, into_sink
