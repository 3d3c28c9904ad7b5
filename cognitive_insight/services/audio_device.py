"""Local audio I/O through sounddevice (PortAudio)."""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from math import gcd
from typing import Any, AsyncIterator, Optional

import numpy as np
from fastapi.concurrency import run_in_threadpool
from scipy.signal import resample_poly

from cognitive_insight.application.interfaces import PermissionProviderInterface

logger = logging.getLogger(__name__)


class AudioDeviceError(RuntimeError):
    """Raised when an audio device is missing or cannot be opened."""


def _sounddevice() -> Any:
    # Importing sounddevice loads the PortAudio shared library, which raises
    # OSError on hosts without it; import on first use only.
    try:
        import sounddevice
    except OSError as exc:
        raise AudioDeviceError(f"PortAudio library is not available: {exc}") from exc
    return sounddevice


def cue_tone(
    *,
    frequency_hz: float = 880.0,
    duration_seconds: float = 0.1,
    volume: float = 0.1,
    sample_rate: int = 16000,
    attack_seconds: float = 0.01,
) -> np.ndarray:
    """Short sine beep with a linear attack followed by a linear release to silence."""

    total = max(1, int(round(sample_rate * duration_seconds)))
    t = np.arange(total, dtype=np.float32) / sample_rate
    tone = np.sin(2.0 * np.pi * frequency_hz * t).astype(np.float32)

    attack = min(total, max(1, int(round(sample_rate * attack_seconds))))
    envelope = np.empty(total, dtype=np.float32)
    envelope[:attack] = np.linspace(0.0, 1.0, attack, endpoint=False)
    envelope[attack:] = np.linspace(1.0, 0.0, total - attack)
    return tone * envelope * volume


def resample(samples: np.ndarray, source_rate: int, target_rate: int) -> np.ndarray:
    if source_rate == target_rate or samples.size == 0:
        return samples.astype(np.float32, copy=False)
    divisor = gcd(int(source_rate), int(target_rate))
    up = int(target_rate) // divisor
    down = int(source_rate) // divisor
    return resample_poly(samples, up, down).astype(np.float32)


class SoundDeviceAudio:
    """Cancellable playback and streaming capture on the default devices."""

    def __init__(
        self,
        *,
        output_sample_rate: int = 16000,
        input_device: Optional[int] = None,
        output_device: Optional[int] = None,
    ) -> None:
        self.output_sample_rate = output_sample_rate
        self._input_device = input_device
        self._output_device = output_device
        self._output_stream: Any = None

    def check_available(self) -> None:
        sd = _sounddevice()
        try:
            sd.query_devices(self._output_device, kind="output")
            sd.query_devices(self._input_device, kind="input")
        except (sd.PortAudioError, ValueError) as exc:
            raise AudioDeviceError(f"No usable audio device: {exc}") from exc

    def _device_rate(self, sd: Any) -> int:
        info = sd.query_devices(self._output_device, kind="output")
        return max(1, int(float(info.get("default_samplerate") or self.output_sample_rate)))

    async def play(self, samples: np.ndarray, sample_rate: int) -> None:
        """Play mono float32 samples and return once the device has drained them.

        Cancelling the caller aborts the stream immediately.
        """

        sd = _sounddevice()
        try:
            device_rate = self._device_rate(sd)
        except (sd.PortAudioError, ValueError) as exc:
            raise AudioDeviceError(f"Output device unavailable: {exc}") from exc
        data = resample(np.asarray(samples, dtype=np.float32), sample_rate, device_rate)
        if data.size == 0:
            return

        loop = asyncio.get_running_loop()
        finished = asyncio.Event()
        cursor = 0

        def callback(outdata, frames, time_info, status) -> None:
            nonlocal cursor
            chunk = data[cursor : cursor + frames]
            outdata[: len(chunk), 0] = chunk
            outdata[len(chunk) :, 0] = 0.0
            cursor += frames
            if cursor >= len(data):
                raise sd.CallbackStop

        try:
            stream = sd.OutputStream(
                samplerate=device_rate,
                device=self._output_device,
                channels=1,
                dtype="float32",
                callback=callback,
                finished_callback=lambda: loop.call_soon_threadsafe(finished.set),
            )
        except (sd.PortAudioError, ValueError) as exc:
            raise AudioDeviceError(f"Cannot open output stream: {exc}") from exc

        self._output_stream = stream
        try:
            stream.start()
            await finished.wait()
        finally:
            if self._output_stream is stream:
                self._output_stream = None
            stream.abort(ignore_errors=True)
            stream.close(ignore_errors=True)

    def stop_playback(self) -> None:
        """Abort the active output stream, if any; its ``play`` call then returns."""

        stream = self._output_stream
        if stream is not None:
            stream.abort(ignore_errors=True)

    @asynccontextmanager
    async def capture(self, sample_rate: int, chunk_bytes: int) -> AsyncIterator[AsyncIterator[bytes]]:
        """Open the microphone as 16-bit mono PCM and yield an iterator of chunks."""

        sd = _sounddevice()
        loop = asyncio.get_running_loop()
        queue: asyncio.Queue[bytes] = asyncio.Queue()

        def callback(indata, frames, time_info, status) -> None:
            if status:
                logger.debug("Input stream status: %s", status)
            loop.call_soon_threadsafe(queue.put_nowait, bytes(indata))

        try:
            stream = sd.RawInputStream(
                samplerate=sample_rate,
                blocksize=max(1, chunk_bytes // 2),
                device=self._input_device,
                channels=1,
                dtype="int16",
                callback=callback,
            )
        except (sd.PortAudioError, ValueError) as exc:
            raise AudioDeviceError(f"Cannot open input stream: {exc}") from exc

        async def chunks() -> AsyncIterator[bytes]:
            while True:
                yield await queue.get()

        stream.start()
        try:
            yield chunks()
        finally:
            stream.abort(ignore_errors=True)
            stream.close(ignore_errors=True)


class MicrophonePermission(PermissionProviderInterface):
    """Treat the ability to open the default input device as granted access."""

    def __init__(self, sample_rate: int = 16000, device: Optional[int] = None) -> None:
        self._sample_rate = sample_rate
        self._device = device

    async def request_microphone_access(self) -> bool:
        return await run_in_threadpool(self._check_devices)

    def _check_devices(self) -> bool:
        try:
            sd = _sounddevice()
        except AudioDeviceError as exc:
            logger.warning("Microphone access denied: %s", exc)
            return False
        try:
            with sd.InputStream(
                samplerate=self._sample_rate,
                device=self._device,
                channels=1,
                dtype="int16",
            ):
                pass
        except (sd.PortAudioError, ValueError) as exc:
            logger.warning("Microphone access denied: %s", exc)
            return False
        return True


__all__ = [
    "AudioDeviceError",
    "MicrophonePermission",
    "SoundDeviceAudio",
    "cue_tone",
    "resample",
]
