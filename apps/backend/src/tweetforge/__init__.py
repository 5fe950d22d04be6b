"""TweetForge: AI tweet generation, Twitter automation and n8n workflow export."""
