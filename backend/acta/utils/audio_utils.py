from pathlib import Path
from typing import Optional, Union

import ffmpeg

SUPPORTED_AUDIO_FORMATS = {".webm", ".mp3", ".mp4", ".m4a", ".wav", ".ogg", ".flac", ".mpga", ".mpeg"}
DEFAULT_AUDIO_SUFFIX = ".webm"
TARGET_SAMPLE_RATE = 16000


class AudioConversionError(RuntimeError):
    """ffmpeg could not turn the recording into model-ready audio."""


def audio_suffix(filename: Optional[str]) -> str:
    """Lower-cased extension of an uploaded file name, ``.webm`` when it has none."""
    suffix = Path(filename or "").suffix.lower()
    return suffix or DEFAULT_AUDIO_SUFFIX


def validate_audio_format(file_path: str) -> bool:
    p = Path(file_path)
    return p.is_file() and p.suffix.lower() in SUPPORTED_AUDIO_FORMATS


def convert_to_wav_16k_mono(
    input_path: Union[str, Path],
    output_dir: Union[str, Path],
    sample_rate: int = TARGET_SAMPLE_RATE,
) -> str:
    """Decode any supported recording to a mono PCM wav at ``sample_rate`` Hz.

    Returns the path of the wav written to ``output_dir``. Files already
    produced by this function are returned untouched.
    """
    source = Path(input_path)
    if not source.is_file():
        raise FileNotFoundError(f"Audio file not found: {source}")

    marker = f"_{sample_rate // 1000}k_mono"
    if source.suffix.lower() == ".wav" and source.stem.endswith(marker):
        return str(source)

    target_dir = Path(output_dir)
    target_dir.mkdir(parents=True, exist_ok=True)
    target = target_dir / f"{source.stem}{marker}.wav"

    try:
        (
            ffmpeg
            .input(str(source))
            .output(str(target), ar=sample_rate, ac=1, format="wav")
            .overwrite_output()
            .run(quiet=True)
        )
    except ffmpeg.Error as e:
        stderr = e.stderr.decode(errors="replace") if e.stderr else str(e)
        raise AudioConversionError(f"Unsupported or corrupt audio ({source.suffix}): {stderr.strip()[-500:]}") from e
    except FileNotFoundError as e:
        raise AudioConversionError("FFmpeg is not installed or not available in PATH") from e

    if not target.is_file():
        raise AudioConversionError(f"ffmpeg produced no output for {source.name}")
    return str(target)
