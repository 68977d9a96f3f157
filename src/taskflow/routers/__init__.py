"""HTTP routers for the TaskFlow API."""
