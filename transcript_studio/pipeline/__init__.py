"""
External-tool stages: audio extraction, transcription engines and
LLM refinement.
"""
