from pathlib import Path
from typing import Union, List, Optional
from dataclasses import dataclass, field
from openai import AsyncOpenAI
from dotenv import load_dotenv
import os
import re

from .models import TranscriptSegment


@dataclass
class TranscriptionResult:
    """Result of a transcription with timestamp information."""
    text: str                                                          # Full transcript text
    segments: List[TranscriptSegment] = field(default_factory=list)   # Timestamped segments
    duration: Optional[float] = None                                   # Total audio duration
    language: Optional[str] = None                                     # Detected language

    def __str__(self) -> str:
        return self.text


class TranscriptionService:
    """
    Service for transcribing audio files using OpenAI's Whisper API.
    """
    def __init__(self, model: str = "whisper-1", max_file_size_mb: int = 25,
                 api_key: Optional[str] = None, client: Optional[AsyncOpenAI] = None) -> None:
        """
        Initializes the transcription service.

        Args:
            model: OpenAI Whisper model identifier.
            max_file_size_mb: Largest file the API accepts, in MB.
            api_key: OpenAI API key. Falls back to OPENAI_API_KEY.
            client: Preconfigured AsyncOpenAI client.
        """
        load_dotenv()

        self.model = model
        self.max_file_size_mb = max_file_size_mb
        self.max_file_size_bytes = max_file_size_mb * 1024 * 1024

        if client is not None:
            self.client = client
            return

        api_key = api_key or os.getenv("OPENAI_API_KEY")
        if not api_key:
            raise ValueError("OPENAI_API_KEY not found in environment variables")
        self.client = AsyncOpenAI(api_key=api_key)

    def _format_transcript(self, transcript: str) -> str:
        """
        Format transcript with one sentence per line.

        Args:
            transcript: Raw transcript text

        Returns:
            Formatted transcript with sentences on separate lines
        """
        if not transcript or not transcript.strip():
            return transcript

        text = transcript.strip()
        # Sentence-ending punctuation followed by whitespace and a capital letter
        sentences = re.split(r'(?<=[.!?])\s+(?=[A-Z])', text)
        cleaned = [sentence.strip() for sentence in sentences if len(sentence.strip()) > 1]
        return '\n'.join(cleaned) if cleaned else text

    async def transcribe(
        self,
        audio_file: Union[str, Path],
        progress_callback=None,
    ) -> TranscriptionResult:
        """
        Transcribes the given audio file to text with segment timestamps.

        Args:
            audio_file: Path to the audio file.
            progress_callback: Optional callback function for progress updates.

        Returns:
            TranscriptionResult with text and segments

        Raises:
            ValueError: If the file does not exist or is over the size limit.
            RuntimeError: If the transcription request fails.
        """
        audio_path = Path(audio_file)
        if not audio_path.exists():
            raise ValueError(f"Audio file not found: {audio_file}")

        file_size = audio_path.stat().st_size
        file_size_mb = file_size / (1024 * 1024)
        if file_size > self.max_file_size_bytes:
            raise ValueError(
                f"Audio file is {file_size_mb:.1f} MB, over the {self.max_file_size_mb} MB transcription limit"
            )

        if progress_callback:
            progress_callback(f"Uploading {file_size_mb:.1f} MB to OpenAI Whisper API...")

        try:
            with open(audio_path, "rb") as audio:
                response = await self.client.audio.transcriptions.create(
                    model=self.model,
                    file=audio,
                    response_format="verbose_json"
                )
        except Exception as e:
            if progress_callback:
                progress_callback(f"Transcription failed: {str(e)}")
            raise RuntimeError(f"Transcription failed: {e}") from e

        segments = []
        for seg in getattr(response, 'segments', None) or []:
            segments.append(TranscriptSegment(
                start_seconds=seg.start,
                duration_seconds=max(0.0, seg.end - seg.start),
                text=seg.text.strip()
            ))

        if progress_callback:
            word_count = len(response.text.split())
            progress_callback(f"Transcription completed ({word_count} words, {len(segments)} segments)")

        return TranscriptionResult(
            text=self._format_transcript(response.text),
            segments=segments,
            duration=getattr(response, 'duration', None),
            language=getattr(response, 'language', None)
        )
