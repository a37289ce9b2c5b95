# Supabase table: user_assignments
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in service.py

"""
Expected Supabase table structure:
- id: uuid (primary key)
- assignee_id: uuid (foreign key to profiles.id, not null) - the user placed under someone
- assignor_id: uuid (foreign key to profiles.id, not null) - the direct superior
- created_by: uuid (foreign key to profiles.id, not null) - who recorded the assignment
- created_at: timestamp (default: now())

Constraints:
- check (assignee_id <> assignor_id)
- unique (assignee_id, assignor_id)
"""
