"""
Mentora - personalized tutoring core with contextual memory.

Package structure:
- core: Config, logging, shared types, errors, background scheduler
- memory: TTL cache, persistence port, tiered memory store
- prompting: Context synthesis for system instructions
- safety: Intent classification ahead of the AI call
- responses: Fallback and canned responses
- knowledge: Current-events provider
- llm: Generative-AI capability abstraction
- chat: Streaming response orchestrator
"""

__version__ = "0.1.0"
