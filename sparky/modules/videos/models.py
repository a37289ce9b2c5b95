# Vimeo videos
# No Supabase table - videos live on Vimeo and are read-only here apart from
# their folder membership.

"""
Fields read from the Vimeo video representation:
- uri: text - /videos/{id}
- name: text - recorder titles look like "<name or email> - <timestamp>"
- description: text - older recordings carry "Recorded by: <name>"
- duration: int (seconds)
- created_time, modified_time: ISO timestamps
- width, height: int
- link, player_embed_url: text
- pictures: {"sizes": [{"width", "height", "link"}, ...]}
"""
