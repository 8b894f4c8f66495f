# Supabase Auth
# Users live entirely in Supabase Auth (auth.users). This backend never stores
# user rows; it only receives the user id back from Supabase and uses it as the
# user_id foreign key value on workspaces and groups.

"""
Supabase Auth calls used here:
- auth.get_user(jwt) - Resolve the user behind an access token (GET /auth/v1/user)

Registration, login and token refresh happen in the extension and dashboard
through supabase-js; the backend only verifies the access tokens they send.
"""
