"""
AI chat module.

- /api/chat relays the widget conversation to the hosted LLM gateway as SSE
- Transcripts are stored per browser session and classified as leads
- Admin review of conversations (detail, counters, CSV export)
"""
