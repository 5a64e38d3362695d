import logging
import threading
from pathlib import Path
from typing import Optional

import yt_dlp
from yt_dlp.utils import DownloadCancelled

from .utils import watch_url

logger = logging.getLogger(__name__)

USER_AGENT = (
    'Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 '
    '(KHTML, like Gecko) Chrome/91.0.4472.124 Safari/537.36'
)


class YouTubeDownloader:
    """Fetches a video's audio track for speech-to-text."""

    def __init__(self):
        self._current_progress_callback = None
        self._cancel_event: Optional[threading.Event] = None

    def _progress_hook(self, d):
        if self._cancel_event is not None and self._cancel_event.is_set():
            raise DownloadCancelled("Audio download cancelled")

        if d['status'] == 'downloading':
            percent = d.get('_percent_str', '').strip()
            speed = d.get('_speed_str', '').strip()
            logger.debug("Downloading audio: %s at %s", percent or '?', speed or '?')
        elif d['status'] == 'finished':
            if self._current_progress_callback:
                self._current_progress_callback("    Download finished, converting to mp3...")

    def download_audio(self, video_id: str, output_dir: str, progress_callback=None,
                       cancel_event: Optional[threading.Event] = None) -> Path:
        """
        Download a video's audio as mp3.

        Blocking; call it from a worker thread when running under asyncio.

        Args:
            video_id: YouTube video ID
            output_dir: Directory the mp3 is written to
            progress_callback: Optional callback function for progress updates
            cancel_event: When set, the next progress tick aborts the download

        Returns:
            Path to the mp3 file

        Raises:
            RuntimeError: If yt-dlp fails or the download is cancelled
        """
        output_path = Path(output_dir)
        output_path.mkdir(parents=True, exist_ok=True)

        self._current_progress_callback = progress_callback
        self._cancel_event = cancel_event

        ydl_opts = {
            'format': 'bestaudio/best',
            'postprocessors': [{
                'key': 'FFmpegExtractAudio',
                'preferredcodec': 'mp3',
                'preferredquality': '192',
            }],
            'outtmpl': str(output_path / f'audio_{video_id}.%(ext)s'),
            'progress_hooks': [self._progress_hook],
            'quiet': True,
            'no_warnings': True,
            'http_headers': {'User-Agent': USER_AGENT},
            'extractor_retries': 3,
            'ignoreerrors': False,
        }

        try:
            with yt_dlp.YoutubeDL(ydl_opts) as ydl:
                ydl.download([watch_url(video_id)])

            if progress_callback:
                progress_callback("    Audio download and conversion completed")

            return output_path / f'audio_{video_id}.mp3'

        except Exception as e:
            raise RuntimeError(f"Download failed: {str(e)}") from e
        finally:
            self._current_progress_callback = None
            self._cancel_event = None
