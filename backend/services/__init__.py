"""
Service layer for the Agenta backend.

skill_elo, candidate_metadata and ranking are pure computation; skill_analyzer
and llm_client wrap the LLM provider; assignment_store and assignment_service
handle persistence and the assignment lifecycle.
"""
