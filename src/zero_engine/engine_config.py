from dataclasses import dataclass, field

from zero_engine.system_prompt import get_master_directive


@dataclass
class EngineConfig:
    model: str = "gemini-2.5-flash"
    translation_model: str = "gemini-2.5-flash"
    search_grounding: bool = True
    stream_idle_timeout_seconds: float = 120.0
    directive: str = field(default_factory=get_master_directive)
