"""Merging of streaming partial/final recognition results.

The recognition engine delivers results in batches: every result from some
``result_index`` onward, each either tentative or final.  Final text is
appended once to the finalized transcript; tentative text is rebuilt from
scratch on every batch, so the live view never accumulates stale partials.
"""

from __future__ import annotations

import logging
from typing import Iterable, Optional

from models import EMPTY_TRANSCRIPT, RecognitionSegment, TranscriptState

logger = logging.getLogger(__name__)


def merge_batch(state: TranscriptState, segments: Iterable[RecognitionSegment]) -> TranscriptState:
    """Fold one engine batch into ``state`` and return the new state."""
    finalized = state.finalized
    interim = ""
    for segment in segments:
        if segment.is_final:
            finalized += segment.text
        else:
            interim += segment.text
    return TranscriptState(finalized=finalized, live_view=finalized + interim)


class TranscriptMerger:
    def __init__(self) -> None:
        self._state = EMPTY_TRANSCRIPT
        self._last_result_index: Optional[int] = None
        self._accepting = True

    @property
    def state(self) -> TranscriptState:
        return self._state

    @property
    def finalized(self) -> str:
        return self._state.finalized

    @property
    def live_view(self) -> str:
        return self._state.live_view

    @property
    def accepting(self) -> bool:
        return self._accepting

    def reset(self) -> None:
        self._state = EMPTY_TRANSCRIPT
        self._last_result_index = None
        self._accepting = True

    def close(self) -> None:
        """Stop accepting input; the transcript is kept as-is."""
        self._accepting = False

    def ingest(self, segment: RecognitionSegment) -> TranscriptState:
        return self.ingest_batch([segment], result_index=segment.index)

    def ingest_batch(
        self,
        segments: list[RecognitionSegment],
        result_index: Optional[int] = None,
    ) -> TranscriptState:
        if not self._accepting:
            logger.debug("Ignoring %d segment(s) after session end", len(segments))
            return self._state
        if result_index is None:
            result_index = segments[0].index if segments else (self._last_result_index or 0)
        if self._last_result_index is not None and result_index < self._last_result_index:
            # Redelivery of an already-consumed range is outside the engine contract.
            logger.warning(
                "Dropping out-of-order batch: result_index %d < %d",
                result_index,
                self._last_result_index,
            )
            return self._state
        self._last_result_index = result_index
        self._state = merge_batch(self._state, segments)
        return self._state
