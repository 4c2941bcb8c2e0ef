"""Canvas REST API access: client, models, course fetching."""
