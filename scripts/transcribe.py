import sys
import argparse
import json
from datetime import datetime
from pathlib import Path

from acta import config
from acta.errors import ActaError
from acta.logging_setup import configure_logging
from acta.services.acta_generator import flatten_transcript
from acta.services.drafter import ChatCompletionsDrafter, DraftRequest
from acta.services.processing_service import normalize_segments, round_duration
from acta.services.transcriber import WhisperTranscriber
from acta.utils import audio_utils
from acta.utils.dates import format_long_date_es


def main():
    parser = argparse.ArgumentParser(description="Transcribe a meeting recording and optionally draft its acta")
    parser.add_argument("audio_file", help="Path to the audio file")
    parser.add_argument("-o", "--output", default=str(config.OUTPUT_DIR), help="Output directory (default: %(default)s)")
    parser.add_argument("-m", "--model", default=config.WHISPER_MODEL_SIZE, help="Whisper model (default: %(default)s)")
    parser.add_argument("-l", "--language", default=config.TRANSCRIPTION_LANGUAGE, help="Language hint (default: %(default)s)")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable detailed output")
    parser.add_argument("--diarize", action="store_true", help="Enable speaker diarization (default: False)")
    parser.add_argument("--num-speakers", type=int, default=config.NUM_SPEAKERS, help="Number of speakers; -1 = auto-detect")
    parser.add_argument("--draft", action="store_true", help="Also draft the acta with the configured LM")
    parser.add_argument("--building", default="", help="Building name used in the draft")
    parser.add_argument("--attendees", type=int, default=0, help="Attendee count used in the draft")

    args = parser.parse_args()
    configure_logging(level="DEBUG" if args.verbose else "WARNING")

    # --- Validate audio ---
    if not audio_utils.validate_audio_format(args.audio_file):
        print(f"Invalid or non-existent audio file: {args.audio_file}")
        sys.exit(1)

    output_path = Path(args.output)
    output_path.mkdir(parents=True, exist_ok=True)
    base_name = Path(args.audio_file).stem

    try:
        # --- Transcribe ---
        transcriber = WhisperTranscriber(model_size=args.model, device=config.WHISPER_DEVICE)
        result = transcriber.transcribe(args.audio_file, args.language)

        # --- Diarization if enabled ---
        speakers = None
        if args.diarize:
            from acta.services.diarizer import DiarizationService

            diarizer = DiarizationService(
                segmentation_model=config.SEGMENTATION_MODEL_PATH,
                embedding_model=config.EMBEDDING_MODEL_PATH,
                num_speakers=args.num_speakers,
            )
            speakers = diarizer.label(args.audio_file, [s for s in result.segments if s.text.strip()])

        transcript = normalize_segments(result, speakers)
    except ActaError as e:
        print(f"{e.message}: {e.detail}")
        sys.exit(1)

    # --- Save transcript ---
    transcript_file = output_path / f"{base_name}_transcript.json"
    transcript_file.write_text(
        json.dumps({"duration": round_duration(result.duration), "transcript": transcript}, ensure_ascii=False, indent=2),
        encoding="utf-8",
    )
    if args.verbose:
        print(flatten_transcript(transcript))
    print(f"Transcript saved to: {transcript_file}")

    # --- Draft ---
    if args.draft:
        drafter = ChatCompletionsDrafter(
            api_url=config.LM_API_URL,
            model=config.CHAT_MODEL,
            api_key=config.LM_API_KEY,
            timeout=config.LM_TIMEOUT,
        )
        request = DraftRequest(
            building_name=args.building or base_name,
            meeting_date=format_long_date_es(datetime.now()),
            attendees_count=args.attendees,
            transcript=flatten_transcript(transcript),
        )
        try:
            acta = drafter.draft(request)
        except ActaError as e:
            print(f"{e.message}: {e.detail}")
            sys.exit(1)
        acta_file = output_path / f"{base_name}_acta.md"
        acta_file.write_text(acta, encoding="utf-8")
        print(f"Acta saved to: {acta_file}")


if __name__ == "__main__":
    main()
