# Supabase tables: workspaces, tabs
# This file documents the expected database schema
# The DDL and the create_workspace_with_tabs() function live in supabase/migrations/

"""
Expected Supabase table structure:

workspaces:
- id: bigint (identity, primary key)
- user_id: uuid (Supabase Auth user id, not null) - owner
- name: text (not null, non-empty)
- description: text (nullable)
- created_at: timestamptz (not null)
- updated_at: timestamptz (not null) - refreshed on every update
- last_accessed_at: timestamptz (nullable)
- index on (user_id, created_at desc)

tabs:
- id: bigint (identity, primary key)
- workspace_id: bigint (foreign key to workspaces.id, not null, on delete cascade)
- url: text (not null)
- title: text (nullable)
- favicon_url: text (nullable)
- position: integer (not null, default 0) - display order, ascending
- created_at: timestamptz (default: now())
- index on (workspace_id, position)

create_workspace_with_tabs(p_user_id uuid, p_name text, p_description text, p_now timestamptz, p_tabs jsonb) -> jsonb
- inserts the workspace and then every tab in p_tabs, in one transaction
- returns the workspace row with a "tabs" array in the order supplied
"""
