"""
Pydantic models for Gemini Live API message structures.

This module provides type-safe models for the messages exchanged with the Gemini Live
bidirectional WebSocket, covering the session setup and realtime audio input we send
and the server messages we receive.
"""

import base64
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from salesvoice.config.constants import INPUT_AUDIO_MIME_TYPE, RESPONSE_MODALITY_AUDIO


class TextPart(BaseModel):
    text: str


class Content(BaseModel):
    """System instruction content."""
    parts: List[TextPart]


class PrebuiltVoiceConfig(BaseModel):
    voiceName: str


class VoiceConfig(BaseModel):
    prebuiltVoiceConfig: PrebuiltVoiceConfig


class SpeechConfig(BaseModel):
    voiceConfig: VoiceConfig


class GenerationConfig(BaseModel):
    responseModalities: List[str] = Field(default_factory=lambda: [RESPONSE_MODALITY_AUDIO])
    speechConfig: SpeechConfig


class SetupPayload(BaseModel):
    """Session configuration sent once, before any audio."""
    model: str
    generationConfig: GenerationConfig
    systemInstruction: Content
    inputAudioTranscription: Dict[str, Any] = Field(default_factory=dict)
    outputAudioTranscription: Dict[str, Any] = Field(default_factory=dict)


class SetupMessage(BaseModel):
    setup: SetupPayload

    @classmethod
    def build(cls, model: str, voice: str, instruction: str) -> "SetupMessage":
        """Build an audio-only setup message for a prebuilt voice."""
        if not model.startswith("models/"):
            model = f"models/{model}"
        return cls(
            setup=SetupPayload(
                model=model,
                generationConfig=GenerationConfig(
                    speechConfig=SpeechConfig(
                        voiceConfig=VoiceConfig(
                            prebuiltVoiceConfig=PrebuiltVoiceConfig(voiceName=voice)
                        )
                    )
                ),
                systemInstruction=Content(parts=[TextPart(text=instruction)]),
            )
        )


class Blob(BaseModel):
    """Inline binary data, base64 encoded."""
    mimeType: str = ""
    data: str = ""


class RealtimeInput(BaseModel):
    audio: Blob


class RealtimeInputMessage(BaseModel):
    """One chunk of caller audio for the live session."""
    realtimeInput: RealtimeInput

    @classmethod
    def from_audio(cls, audio: bytes, mime_type: str = INPUT_AUDIO_MIME_TYPE) -> "RealtimeInputMessage":
        return cls(
            realtimeInput=RealtimeInput(
                audio=Blob(mimeType=mime_type, data=base64.b64encode(audio).decode("utf-8"))
            )
        )


class Part(BaseModel):
    text: Optional[str] = None
    inlineData: Optional[Blob] = None


class ModelTurn(BaseModel):
    parts: List[Part] = Field(default_factory=list)


class Transcription(BaseModel):
    text: Optional[str] = None


class ServerContent(BaseModel):
    """Model output for the current turn."""
    modelTurn: Optional[ModelTurn] = None
    turnComplete: bool = False
    interrupted: bool = False
    inputTranscription: Optional[Transcription] = None
    outputTranscription: Optional[Transcription] = None


class GoAway(BaseModel):
    timeLeft: Optional[str] = None


class ServerMessage(BaseModel):
    """Any message received from the live session."""
    setupComplete: Optional[Dict[str, Any]] = None
    serverContent: Optional[ServerContent] = None
    goAway: Optional[GoAway] = None
    toolCall: Optional[Dict[str, Any]] = None
    usageMetadata: Optional[Dict[str, Any]] = None

    def audio_payloads(self) -> List[str]:
        """Base64 data of every inline audio part of the model turn, in order.

        Decoding is left to the caller so one bad part can be skipped on its own.
        """
        if not self.serverContent or not self.serverContent.modelTurn:
            return []
        return [
            part.inlineData.data
            for part in self.serverContent.modelTurn.parts
            if part.inlineData
            and part.inlineData.data
            and (not part.inlineData.mimeType or part.inlineData.mimeType.startswith("audio"))
        ]
