"""Web API for Chat AI Analyzer."""
