"""Command bridge and voice assistant adapters."""
from .control import CommandBridge, ControlResult, ToggleResult, VoiceIdentity
from .alexa import AlexaSmartHome
from .google import GoogleSmartHome

__all__ = [
    "CommandBridge",
    "ControlResult",
    "ToggleResult",
    "VoiceIdentity",
    "AlexaSmartHome",
    "GoogleSmartHome",
]
