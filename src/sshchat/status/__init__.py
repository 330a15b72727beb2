"""HTTP status endpoint for sshchat.

A small FastAPI application reporting server health and the sessions
currently attached, served with uvicorn on the same event loop as the
SSH listener.
"""
