"""Line-aligned chunking of source files."""
import logging
import tiktoken
from typing import List, Optional

from models.repository import SourceFile
from models.chunk import Chunk
from config import CHUNK_MAX_CHARS

logger = logging.getLogger(__name__)

TOKENIZER_ENCODING = "o200k_base"


def split_text(text: str, max_size: int) -> List[str]:
    """
    Split text into segments that break only at line ends.

    Lines keep their "\\n" terminator, so joining the segments gives back
    the input exactly. A segment never exceeds max_size characters unless it
    is a single line that is longer than max_size on its own; such a line is
    emitted whole rather than cut.

    Args:
        text: Text to split
        max_size: Maximum segment length in characters

    Returns:
        Segments in input order, empty for empty text
    """
    if max_size <= 0:
        raise ValueError("max_size must be positive")

    segments: List[str] = []
    buffer = ""

    for line in _lines(text):
        if buffer and len(buffer) + len(line) > max_size:
            segments.append(buffer)
            buffer = ""
        buffer += line

    if buffer:
        segments.append(buffer)

    return segments


def _lines(text: str) -> List[str]:
    # Only "\n" ends a line; str.splitlines() would also break on "\r", "\x0c" and others
    parts = text.split("\n")
    lines = [part + "\n" for part in parts[:-1]]
    if parts[-1]:
        lines.append(parts[-1])
    return lines


def load_tokenizer(encoding_name: str = TOKENIZER_ENCODING):
    """Load the tiktoken encoding used for token counts, or None if unavailable."""
    try:
        tokenizer = tiktoken.get_encoding(encoding_name)
    except Exception as e:
        # Token counts are informational; ingestion works without them
        logger.warning(f"tiktoken encoder unavailable, token counts disabled: {e}")
        return None

    logger.info(f"Initialized tiktoken encoder ({encoding_name})")
    return tokenizer


class ChunkingEngine:
    """Turns source files into chunks ready for embedding."""

    def __init__(self, max_chunk_size: int = CHUNK_MAX_CHARS, tokenizer=None):
        """
        Initialize ChunkingEngine.

        Args:
            max_chunk_size: Maximum chunk size in characters
            tokenizer: Optional tiktoken encoding used to record token counts
        """
        if max_chunk_size <= 0:
            raise ValueError("max_chunk_size must be positive")

        self.max_chunk_size = max_chunk_size
        self.tokenizer = tokenizer

    def chunk_file(self, source: SourceFile) -> List[Chunk]:
        """Split one file into chunks carrying their parent identity."""
        segments = split_text(source.raw_text, self.max_chunk_size)

        chunks = []
        for idx, segment in enumerate(segments):
            if len(segment) > self.max_chunk_size:
                logger.warning(
                    f"Chunk {idx} of {source.path} is a single {len(segment)}-char line "
                    f"over the {self.max_chunk_size}-char limit",
                    extra={"extra": {"path": source.path, "chunk_index": idx}}
                )

            chunks.append(Chunk(
                parent_content_id=source.content_id,
                index=idx,
                text=segment,
                total_chunks=len(segments),
                path=source.path,
                token_count=self._count_tokens(segment)
            ))

        return chunks

    def chunk_files(self, sources: List[SourceFile]) -> List[Chunk]:
        """Chunk several files, keeping file order then chunk order."""
        all_chunks = []
        for source in sources:
            file_chunks = self.chunk_file(source)
            logger.debug(f"Chunked {source.path} into {len(file_chunks)} chunks")
            all_chunks.extend(file_chunks)

        logger.info(f"Created {len(all_chunks)} chunks from {len(sources)} files")
        return all_chunks

    def _count_tokens(self, text: str) -> int:
        if self.tokenizer is None:
            return 0
        # disallowed_special=() keeps literal "<|endoftext|>" in source files from raising
        return len(self.tokenizer.encode(text, disallowed_special=()))
