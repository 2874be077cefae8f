"""Recursive character text splitter.

Splits a document's text into bounded, overlapping chunks, preferring to cut
at paragraph breaks, then line breaks, then sentence ends, then words, and
only as a last resort between characters.
"""

import re
from datetime import datetime, timezone

from shared.models.document import Chunk

CHUNK_SIZE = 1000       # max characters per chunk
CHUNK_OVERLAP = 200     # max characters shared by consecutive chunks
SEPARATORS = ["\n\n", "\n", ". ", " ", ""]


class TextSplitter:
    """Recursive splitter over an ordered list of separators, coarsest first."""

    def __init__(self, chunk_size: int = CHUNK_SIZE, chunk_overlap: int = CHUNK_OVERLAP, separators: list[str] | None = None):
        if chunk_size <= 0:
            raise ValueError(f"chunk_size must be positive, got {chunk_size}.")
        if chunk_overlap < 0 or chunk_overlap >= chunk_size:
            raise ValueError(
                f"chunk_overlap must be >= 0 and smaller than chunk_size ({chunk_size}), got {chunk_overlap}."
            )
        self.chunk_size = chunk_size
        self.chunk_overlap = chunk_overlap
        self.separators = separators if separators is not None else list(SEPARATORS)

    ##########################################
    ################ SPLIT ###################
    ##########################################

    def split_text(self, text: str) -> list[str]:
        """Split text into chunks of at most chunk_size characters.

        Args:
            text (str): The full document text.

        Returns:
            list[str]: Whitespace-stripped, non-empty chunks in document order.
                       Empty for empty or whitespace-only text.
        """
        return [piece for _, piece in self.split_spans(text)]

    def split_spans(self, text: str) -> list[tuple[int, str]]:
        """Like split_text(), but pairs every chunk with its offset in text."""
        if not text or not text.strip():
            return []
        return self._split_recursive(text, self.separators, 0)

    def create_chunks(self, text: str, document_id: str, owner_id: str, file_name: str) -> list[Chunk]:
        """Split text and wrap each piece in a Chunk.

        Indices are contiguous from 0 and all chunks share one creation timestamp.
        start_index is the offset the splitter cut the chunk at, so repeated
        passages keep their own position.

        Args:
            text (str): The full document text.
            document_id (str): Id of the owning document.
            owner_id (str): Id of the owning user.
            file_name (str): Original file name, kept for citations.

        Returns:
            list[Chunk]: The chunks in document order.
        """
        created_at = datetime.now(timezone.utc)
        return [
            Chunk(
                text=piece,
                document_id=document_id,
                owner_id=owner_id,
                file_name=file_name,
                index=index,
                created_at=created_at,
                start_index=start_index,
            )
            for index, (start_index, piece) in enumerate(self.split_spans(text))
        ]

    ##########################################
    ############### INTERNAL #################
    ##########################################

    def _split_recursive(self, text: str, separators: list[str], base: int) -> list[tuple[int, str]]:
        # first separator present in the text wins; "" always matches
        separator = separators[-1]
        finer: list[str] = []
        for i, candidate in enumerate(separators):
            if candidate == "":
                separator = candidate
                break
            if candidate in text:
                separator = candidate
                finer = separators[i + 1:]
                break

        final_chunks: list[tuple[int, str]] = []
        pending: list[tuple[int, str]] = []
        for start, piece in self._split_keep_separator(text, separator, base):
            if len(piece) < self.chunk_size:
                pending.append((start, piece))
                continue
            if pending:
                final_chunks.extend(self._merge(pending))
                pending = []
            if finer:
                final_chunks.extend(self._split_recursive(piece, finer, start))
            else:
                self._append_joined(final_chunks, [(start, piece)])
        if pending:
            final_chunks.extend(self._merge(pending))
        return final_chunks

    @staticmethod
    def _split_keep_separator(text: str, separator: str, base: int = 0) -> list[tuple[int, str]]:
        """Split on separator, leaving each separator at the end of the piece before it.

        Every piece is paired with its offset, base being the offset of text itself.
        """
        if separator == "":
            pieces = list(text)
        else:
            parts = re.split(f"({re.escape(separator)})", text)
            pieces = [parts[i] + parts[i + 1] for i in range(0, len(parts) - 1, 2)]
            if len(parts) % 2 == 1:
                pieces.append(parts[-1])

        spans: list[tuple[int, str]] = []
        offset = base
        for piece in pieces:
            if piece:
                spans.append((offset, piece))
            offset += len(piece)
        return spans

    def _merge(self, pieces: list[tuple[int, str]]) -> list[tuple[int, str]]:
        """Greedily join small adjacent pieces into chunks, carrying an overlap tail forward."""
        chunks: list[tuple[int, str]] = []
        current: list[tuple[int, str]] = []
        total = 0
        for span in pieces:
            length = len(span[1])
            if total + length > self.chunk_size and current:
                self._append_joined(chunks, current)
                # drop from the front until the tail fits the overlap and the next piece fits the chunk
                while total > self.chunk_overlap or (total + length > self.chunk_size and total > 0):
                    total -= len(current[0][1])
                    current = current[1:]
            current.append(span)
            total += length
        self._append_joined(chunks, current)
        return chunks

    @staticmethod
    def _append_joined(chunks: list[tuple[int, str]], pieces: list[tuple[int, str]]) -> None:
        joined = "".join(piece for _, piece in pieces)
        stripped = joined.strip()
        if stripped:
            chunks.append((pieces[0][0] + len(joined) - len(joined.lstrip()), stripped))
