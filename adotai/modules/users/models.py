# Supabase tables: profiles, auth.users
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in service.py

"""
Expected Supabase table structure:

profiles:
- id: uuid (primary key; normally auth.users.id, not guaranteed)
- email: text (not null) - copied from auth.users by the signup trigger
- name: text (nullable until signup fills it in)
- type: text ('adopter' | 'advertiser' | 'admin')
- phone: text (nullable)
- address: text (nullable)
- avatar_url: text (nullable)
- bio: text (nullable)
- status: text ('active' | 'blocked', default 'active')
- created_at: timestamp (default: now())
- updated_at: timestamp (nullable)

A database trigger on auth.users inserts the profiles row; signup then
updates it with the form data.
"""
