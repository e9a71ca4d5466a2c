"""
LLM module - generative-AI capability abstraction.

- base: AICapability protocol (streaming chat + image generation)
- litellm_adapter: LiteLLM-backed implementation for any supported vendor
"""
