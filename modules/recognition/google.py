"""
Google Speech Recognition Adapter

Continuous recognition over the default microphone using the
SpeechRecognition package. Listening and transcription are blocking
calls, so both run in a worker thread to keep the event loop free.
"""

import asyncio
import errno
import time
from typing import AsyncIterator, Optional, Tuple

import speech_recognition as sr

from core.errors import PermissionDenied, RecognitionUnavailable, TransientRecognitionError
from modules.recognition.base import RecognitionAdapter, RecognitionConfig, UtteranceEvent
from utils.logger import get_logger

logger = get_logger('recognition.google')


class GoogleRecognition(RecognitionAdapter):
    """Google Web Speech implementation (final results only)"""

    def __init__(self, config: dict):
        recording_config = config.get('recording', {})

        recognition_config = RecognitionConfig(
            language=config.get('language', 'en-US'),
            timeout=recording_config.get('timeout', 5.0),
            phrase_time_limit=recording_config.get('phrase_time_limit', 15.0),
            pause_threshold=recording_config.get('pause_threshold', 0.8),
            energy_threshold=recording_config.get('energy_threshold', 300),
            dynamic_energy=recording_config.get('dynamic_energy', True)
        )

        super().__init__(recognition_config)

        self.recognizer = sr.Recognizer()
        self.recognizer.pause_threshold = self.config.pause_threshold
        self.recognizer.energy_threshold = self.config.energy_threshold
        self.recognizer.dynamic_energy_threshold = self.config.dynamic_energy

        self._microphone: Optional[sr.Microphone] = None

        logger.info(
            f"Google recognition initialized (language={self.config.language}, "
            f"timeout={self.config.timeout}s, max_phrase={self.config.phrase_time_limit}s)"
        )

    def start(self):
        """Open the default microphone"""
        try:
            self._microphone = sr.Microphone()
        except AttributeError as e:
            # SpeechRecognition raises AttributeError when PyAudio is missing
            raise RecognitionUnavailable(f"Microphone backend unavailable: {e}") from e
        except OSError as e:
            raise self._map_os_error(e) from e

        self.is_listening = True
        logger.info("Recognition started")

    def stop(self):
        """Stop listening; the current blocking listen finishes on its own"""
        if self.is_listening:
            logger.info("Recognition stopped")
        self.is_listening = False
        self._microphone = None

    async def stream(self) -> AsyncIterator[UtteranceEvent]:
        """Yield one final event per recognized phrase"""
        while self.is_listening:
            audio = await asyncio.to_thread(self._listen_once)
            if audio is None or not self.is_listening:
                continue

            result = await asyncio.to_thread(self._transcribe, audio)
            if result is None:
                continue

            text, confidence = result
            logger.debug(f"Recognized '{text}' (confidence={confidence:.2f})")
            yield UtteranceEvent(
                text=text,
                is_final=True,
                confidence=confidence,
                timestamp=time.time()
            )

    def _listen_once(self) -> Optional[sr.AudioData]:
        """Block until one phrase has been captured"""
        microphone = self._microphone
        if microphone is None:
            return None

        try:
            with microphone as source:
                return self.recognizer.listen(
                    source,
                    timeout=self.config.timeout,
                    phrase_time_limit=self.config.phrase_time_limit
                )
        except sr.WaitTimeoutError as e:
            raise TransientRecognitionError("No speech detected", reason="no-speech") from e
        except OSError as e:
            raise self._map_os_error(e) from e

    def _transcribe(self, audio: sr.AudioData) -> Optional[Tuple[str, float]]:
        """Send audio to the recognizer; None when nothing was understood"""
        try:
            response = self.recognizer.recognize_google(
                audio,
                language=self.config.language,
                show_all=True
            )
        except sr.UnknownValueError:
            logger.debug("Could not understand audio")
            return None
        except sr.RequestError as e:
            raise TransientRecognitionError(f"Recognition service error: {e}", reason="network") from e

        if not response or not isinstance(response, dict):
            return None

        alternatives = response.get('alternative') or []
        if not alternatives:
            return None

        best = alternatives[0]
        text = best.get('transcript', '').strip()
        if not text:
            return None

        # Only the top alternative carries a confidence score
        return text, float(best.get('confidence', 1.0))

    def calibrate(self, duration: float = 1.0):
        """Calibrate the energy threshold against ambient noise"""
        logger.info(f"Adjusting for ambient noise ({duration}s)...")

        if self._microphone is None:
            self.start()

        with self._microphone as source:
            self.recognizer.adjust_for_ambient_noise(source, duration=duration)

        logger.info(f"Energy threshold adjusted to {self.recognizer.energy_threshold}")

    def is_available(self) -> bool:
        """Check if a microphone can be opened"""
        try:
            with sr.Microphone():
                pass
            return True
        except (AttributeError, OSError) as e:
            logger.warning(f"Microphone not available: {e}")
            return False

    @staticmethod
    def _map_os_error(error: OSError):
        """Split OS errors into permission problems and missing hardware"""
        if error.errno in (errno.EACCES, errno.EPERM) or 'permission' in str(error).lower():
            return PermissionDenied(f"Microphone access denied: {error}")
        return RecognitionUnavailable(f"No usable microphone: {error}")
