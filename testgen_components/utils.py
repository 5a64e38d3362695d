"""
Utility functions for classifying content URLs
"""

import re
from typing import Tuple, Optional
from urllib.parse import urlparse, parse_qs

YOUTUBE_HOSTS = ['www.youtube.com', 'youtube.com', 'youtu.be', 'm.youtube.com', 'music.youtube.com']

VIDEO_ID_PATTERN = re.compile(r'^[A-Za-z0-9_-]{11}$')


def _is_video_id(candidate: Optional[str]) -> bool:
    return bool(candidate) and bool(VIDEO_ID_PATTERN.match(candidate))


def extract_video_id(url: str) -> Optional[str]:
    """
    Extract video ID from various YouTube URL formats.

    Args:
        url: YouTube video URL

    Returns:
        Video ID if found, None otherwise

    Examples:
        >>> extract_video_id("https://www.youtube.com/watch?v=dQw4w9WgXcQ")
        'dQw4w9WgXcQ'

        >>> extract_video_id("https://youtu.be/dQw4w9WgXcQ?t=42")
        'dQw4w9WgXcQ'

        >>> extract_video_id("https://example.com/article") is None
        True
    """
    if not url or not isinstance(url, str):
        return None

    parsed = urlparse(url.strip())
    if parsed.netloc.lower() not in YOUTUBE_HOSTS:
        return None

    if parsed.netloc.lower() == 'youtu.be':
        # Short URL format: https://youtu.be/VIDEO_ID
        video_id = parsed.path.lstrip('/').split('/')[0]
        return video_id if _is_video_id(video_id) else None

    query_params = parse_qs(parsed.query)
    if 'v' in query_params:
        video_id = query_params['v'][0]
        return video_id if _is_video_id(video_id) else None

    for prefix in ('/embed/', '/shorts/', '/live/', '/v/'):
        if prefix in parsed.path:
            video_id = parsed.path.split(prefix)[-1].split('/')[0]
            return video_id if _is_video_id(video_id) else None

    return None


def is_video_url(url: str) -> bool:
    """
    Check if URL points at a video host.

    Args:
        url: Content URL

    Returns:
        True if it's a YouTube URL, False otherwise
    """
    if not url or not isinstance(url, str):
        return False
    return urlparse(url.strip()).netloc.lower() in YOUTUBE_HOSTS


def detect_content_type(url: str) -> Tuple[str, Optional[str]]:
    """
    Decide whether a URL is a video or a generic document.

    Args:
        url: Content URL to analyze

    Returns:
        Tuple of (type, identifier) where:
        - type: 'video', 'document', or 'invalid'
        - identifier: the video id for 'video' (None when the URL is on a video
          host but carries no recognisable id), the stripped URL for
          'document', None for 'invalid'
    """
    if not url or not isinstance(url, str):
        return ('invalid', None)

    url = url.strip()
    parsed = urlparse(url)
    if parsed.scheme not in ('http', 'https') or not parsed.netloc:
        return ('invalid', None)

    if is_video_url(url):
        return ('video', extract_video_id(url))

    return ('document', url)


def watch_url(video_id: str) -> str:
    """Canonical watch page URL for a video id."""
    return f"https://www.youtube.com/watch?v={video_id}"
