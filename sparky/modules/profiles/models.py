# Supabase table: profiles
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in service.py

"""
Expected Supabase table structure:

profiles:
- id: uuid (primary key, references auth.users.id)
- display_name: text (nullable)
- email: text (nullable) - synced from auth.users
- avatar_url: text (nullable)
- role: text (not null, default: 'user') - values: user, manager, supervisor, admin
- created_at: timestamp (default: now())
- updated_at: timestamp (nullable)

One row per authenticated identity. The row is created on the first
authenticated request (or by POST /api/debug/fix-profile).
"""
