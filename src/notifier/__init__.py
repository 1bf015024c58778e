"""Public exports for completion notification components."""

from .config import NotifierConfig
from .cue import AudioCue, load_wav_cue, synthesize_chime
from .errors import NotifierDependencyError, NotifierError
from .output import SoundDeviceAudioOutput
from .service import CompletionNotifier

__all__ = [
    "AudioCue",
    "CompletionNotifier",
    "NotifierConfig",
    "NotifierDependencyError",
    "NotifierError",
    "SoundDeviceAudioOutput",
    "load_wav_cue",
    "synthesize_chime",
]
