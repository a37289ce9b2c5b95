# Supabase Auth
# This module uses Supabase's built-in authentication system
# No custom tables are required - Supabase Auth handles:
# - User registration and sign-in (done by the browser with supabase-js)
# - JWT token generation and validation
# - Magic links used for admin impersonation

"""
Supabase Auth provides:
- auth.get_user() - Get current user from JWT token
- auth.admin.generate_link() - Magic/invite link for another user (service role only)

Impersonation state lives in the browser. The front end echoes the
impersonated user back as a JSON `X-Impersonate-User` header, e.g.
{"id": "...", "email": "...", "display_name": "...", "role": "user"}
and the API honours it only for admins (see core.dependencies).
"""
