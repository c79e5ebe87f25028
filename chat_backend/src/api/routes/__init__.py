"""HTTP routers for the Chat Backend API."""
