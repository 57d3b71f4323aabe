"""Types shared by the backend service and the client controllers."""
