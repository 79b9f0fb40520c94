"""
Voice capture session.

Turns a speech recognition event stream into one finalized query string.
The session is an explicit state machine with a single authoritative state:

    IDLE -> AWAITING_PERMISSION -> LISTENING -> FINALIZING -> IDLE
                    |                  |
                    +-> FAILED -> IDLE +-> IDLE (stop / empty timeout)

Audio resources are released exactly once on every path out of LISTENING.
"""

import asyncio
import logging
from typing import AsyncIterator, Callable, Optional

from foodshare_search.channels.protocols import SpeechRecognitionService
from foodshare_search.error_handling.errors import (
    PermissionDenied,
    SearchCoreError,
    VoiceRecognitionFailed,
)
from foodshare_search.models import TranscriptionEvent, VoiceState


logger = logging.getLogger(__name__)


class VoiceCaptureSession:
    """
    Cancellable speech-to-query session.

    Attributes:
        service: Platform speech recognizer
        on_final: Receives the finalized transcript
        timeout_seconds: Hard limit on the listening phase
        on_state_change: Optional observer called with every new state
        state: Current state
        partial_text: Live transcript while listening
        failure_reason: Reason of the last failure, cleared on the next start
        last_error: Typed error of the last failure
    """

    def __init__(
        self,
        service: SpeechRecognitionService,
        on_final: Callable[[str], None],
        timeout_seconds: float = 10.0,
        on_state_change: Optional[Callable[[VoiceState], None]] = None
    ):
        self.service = service
        self.on_final = on_final
        self.timeout_seconds = timeout_seconds
        self.on_state_change = on_state_change
        self.state = VoiceState.IDLE
        self.partial_text = ""
        self.failure_reason: Optional[str] = None
        self.last_error: Optional[SearchCoreError] = None
        self._listen_task: Optional[asyncio.Task] = None
        self._stream: Optional[AsyncIterator[TranscriptionEvent]] = None
        self._audio_active = False
        self._start_token = 0

    @property
    def is_active(self) -> bool:
        return self.state in (
            VoiceState.AWAITING_PERMISSION,
            VoiceState.LISTENING,
            VoiceState.FINALIZING,
        )

    async def start(self) -> bool:
        """
        Request permission and begin listening.

        A start request while a session is already running is ignored.

        Returns:
            True if the session is now listening
        """
        if self.state != VoiceState.IDLE:
            logger.info(f"Voice capture already {self.state.value}, ignoring start request")
            return False

        self._start_token += 1
        token = self._start_token
        self.partial_text = ""
        self.failure_reason = None
        self.last_error = None
        self._transition(VoiceState.AWAITING_PERMISSION)

        if not self.service.is_available():
            self._fail(VoiceRecognitionFailed("Voice search is not available"))
            return False

        try:
            granted = await self.service.request_permission()
        except Exception as e:
            if token != self._start_token:
                return False
            self._fail(VoiceRecognitionFailed(f"Permission request failed: {e}"))
            return False

        # A stop, or a stop followed by a newer start, ran during the prompt
        if token != self._start_token:
            logger.info("Voice start superseded while awaiting permission")
            return False

        if not granted:
            self._fail(PermissionDenied())
            return False

        try:
            stream = self.service.start_recognition()
        except Exception as e:
            logger.error(f"Failed to start voice recognition: {e}")
            self._fail(VoiceRecognitionFailed("Failed to start voice recognition"))
            return False

        self._stream = stream
        self._audio_active = True
        self._transition(VoiceState.LISTENING)
        self._listen_task = asyncio.create_task(self._listen(stream))
        return True

    async def stop(self) -> None:
        """Stop listening without forwarding anything."""
        self._start_token += 1
        if self.state == VoiceState.IDLE:
            return

        task = self._listen_task
        self._listen_task = None
        if task is not None and not task.done():
            task.cancel()
            await asyncio.gather(task, return_exceptions=True)

        await self._end_capture()
        if self.state != VoiceState.IDLE:
            self._transition(VoiceState.IDLE)

    async def wait(self) -> None:
        """Wait until the current listening phase ends."""
        task = self._listen_task
        if task is not None:
            await asyncio.gather(task, return_exceptions=True)

    async def _listen(self, stream: AsyncIterator[TranscriptionEvent]) -> None:
        try:
            try:
                text = await asyncio.wait_for(self._consume(stream), timeout=self.timeout_seconds)
            except asyncio.TimeoutError:
                logger.info(f"Voice capture timed out after {self.timeout_seconds:.0f}s")
                text = self.partial_text.strip()
        except asyncio.CancelledError:
            await self._end_capture()
            raise
        except Exception as e:
            await self._end_capture()
            self._fail(VoiceRecognitionFailed(str(e) or type(e).__name__))
            return

        await self._end_capture()
        self._listen_task = None

        if not text:
            self._transition(VoiceState.IDLE)
            return

        self._transition(VoiceState.FINALIZING)
        try:
            self.on_final(text)
        except Exception as e:
            logger.error(f"Forwarding voice query failed: {e}")
        finally:
            self._transition(VoiceState.IDLE)

    async def _consume(self, stream: AsyncIterator[TranscriptionEvent]) -> str:
        async for event in stream:
            self.partial_text = event.partial_text
            if event.is_final:
                return event.partial_text.strip()
        # Stream ended without a final event
        return self.partial_text.strip()

    async def _end_capture(self) -> None:
        """Close the recognition stream, then release the audio capture."""
        stream = self._stream
        self._stream = None
        aclose = getattr(stream, "aclose", None)
        if aclose is not None:
            try:
                await aclose()
            except Exception as e:
                logger.warning(f"Closing recognition stream failed: {e}")
        self._release_audio()

    def _release_audio(self) -> None:
        if not self._audio_active:
            return
        self._audio_active = False
        try:
            self.service.stop_recognition()
        except Exception as e:
            logger.warning(f"Releasing audio capture failed: {e}")

    def _fail(self, error: SearchCoreError) -> None:
        self.last_error = error
        self.failure_reason = str(error)
        logger.warning(f"Voice capture failed: {error}")
        self._transition(VoiceState.FAILED)
        self._transition(VoiceState.IDLE)

    def _transition(self, state: VoiceState) -> None:
        self.state = state
        if self.on_state_change is not None:
            self.on_state_change(state)
