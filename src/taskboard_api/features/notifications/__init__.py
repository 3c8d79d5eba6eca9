"""In-app notifications and side-effect delivery."""
