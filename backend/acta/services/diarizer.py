import logging
import tempfile
from typing import List, Optional, Sequence

import sherpa_onnx
import soundfile as sf

from ..utils import audio_utils
from .transcriber import TimedSegment

logger = logging.getLogger("acta.diarizer")

MULTI_SPEAKER_THRESHOLD = 0.3
SHORT_SEGMENT_THRESHOLD = 1.5
SHORT_SEGMENT_DOMINANCE = 0.7


def load_diarizer(
    segmentation_model: str,
    embedding_model: str,
    num_speakers: int = -1,
    cluster_threshold: float = 0.5,
) -> sherpa_onnx.OfflineSpeakerDiarization:
    segmentation_cfg = sherpa_onnx.OfflineSpeakerSegmentationModelConfig(
        pyannote=sherpa_onnx.OfflineSpeakerSegmentationPyannoteModelConfig(model=segmentation_model)
    )
    embedding_cfg = sherpa_onnx.SpeakerEmbeddingExtractorConfig(model=embedding_model)
    clustering_cfg = sherpa_onnx.FastClusteringConfig(
        num_clusters=-1 if num_speakers <= 0 else num_speakers,
        threshold=cluster_threshold,
    )
    config = sherpa_onnx.OfflineSpeakerDiarizationConfig(
        segmentation=segmentation_cfg,
        embedding=embedding_cfg,
        clustering=clustering_cfg,
        min_duration_on=0.5,
        min_duration_off=0.3,
    )
    return sherpa_onnx.OfflineSpeakerDiarization(config)


def assign_speakers(transcript: Sequence[TimedSegment], diarization_segments) -> List[str]:
    """
    Assign a speaker label to every transcript segment using majority overlap.
    If the second speaker covers >= MULTI_SPEAKER_THRESHOLD of a segment,
    both are kept (e.g. "speaker_0 + speaker_1"). Short segments fall back
    to the previous speaker unless one speaker clearly dominates.
    """
    labels: List[str] = []
    previous_speaker: Optional[str] = None

    for t_seg in transcript:
        seg_duration = max(t_seg.end - t_seg.start, 0.001)

        speaker_overlap = {}
        for d_seg in diarization_segments:
            overlap = min(t_seg.end, d_seg.end) - max(t_seg.start, d_seg.start)
            if overlap > 0:
                speaker_id = f"speaker_{d_seg.speaker}"
                speaker_overlap[speaker_id] = speaker_overlap.get(speaker_id, 0) + overlap

        if not speaker_overlap:
            assigned_label = previous_speaker or "speaker_unknown"
        else:
            ranked = sorted(speaker_overlap.items(), key=lambda x: x[1], reverse=True)
            main_speaker, main_overlap = ranked[0]
            main_ratio = main_overlap / seg_duration

            if seg_duration < SHORT_SEGMENT_THRESHOLD:
                if main_ratio >= SHORT_SEGMENT_DOMINANCE or previous_speaker is None:
                    assigned_label = main_speaker
                else:
                    assigned_label = previous_speaker
            elif len(ranked) > 1 and ranked[1][1] / seg_duration >= MULTI_SPEAKER_THRESHOLD:
                assigned_label = f"{main_speaker} + {ranked[1][0]}"
            else:
                assigned_label = main_speaker

        previous_speaker = assigned_label
        labels.append(assigned_label)

    return labels


class DiarizationService:
    """Labels transcript segments with anonymous speaker ids (speaker_0, speaker_1, ...)."""

    def __init__(
        self,
        segmentation_model: str,
        embedding_model: str,
        num_speakers: int = -1,
        cluster_threshold: float = 0.5,
    ):
        self.segmentation_model = segmentation_model
        self.embedding_model = embedding_model
        self.num_speakers = num_speakers
        self.cluster_threshold = cluster_threshold
        self._diarizer = None

    @property
    def diarizer(self) -> sherpa_onnx.OfflineSpeakerDiarization:
        if self._diarizer is None:
            self._diarizer = load_diarizer(
                self.segmentation_model,
                self.embedding_model,
                num_speakers=self.num_speakers,
                cluster_threshold=self.cluster_threshold,
            )
        return self._diarizer

    def diarize(self, audio_path: str) -> list:
        with tempfile.TemporaryDirectory(prefix="acta-diar-") as work_dir:
            wav_path = audio_utils.convert_to_wav_16k_mono(audio_path, work_dir)
            samples, _sample_rate = sf.read(wav_path, dtype="float32")
        # Mix stereo down to mono
        if samples.ndim > 1:
            samples = samples.mean(axis=1)
        result = self.diarizer.process(samples=samples, callback=None)
        return result.sort_by_start_time()

    def label(self, audio_path: str, segments: Sequence[TimedSegment]) -> List[str]:
        diarization_segments = self.diarize(audio_path)
        logger.info(
            "Diarization found %d turns for %d transcript segments",
            len(diarization_segments),
            len(segments),
        )
        return assign_speakers(segments, diarization_segments)
