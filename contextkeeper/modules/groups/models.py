# Supabase table: groups
# This file documents the expected database schema
# The DDL lives in supabase/migrations/

"""
Expected Supabase table structure:

groups:
- id: bigint (identity, primary key)
- user_id: uuid (Supabase Auth user id, not null) - owner
- name: text (not null)
- color: text (not null, default: '#3b82f6')
- created_at: timestamptz (not null)

Groups are plain labels; nothing links them to workspaces yet.
"""
