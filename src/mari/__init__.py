"""Mari agent: conversational-commerce message gateway."""
