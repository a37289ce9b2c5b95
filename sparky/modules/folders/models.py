# Supabase table: user_folders
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in service.py
# Folders themselves are Vimeo projects; this table only maps owners to them

"""
Expected Supabase table structure:
- id: uuid (primary key)
- owner_email: text (unique, not null) - lower-cased, trimmed user email
- folder_id: text (not null) - Vimeo project id (last segment of folder_uri)
- folder_uri: text (not null) - e.g. /users/123/projects/456
- folder_name: text (not null)
- created_at: timestamp (default: now())

The unique constraint on owner_email is what makes find-or-create safe across
processes: a losing insert raises 23505 and the loser deletes its Vimeo folder.
"""
