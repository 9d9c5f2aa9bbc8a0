# Supabase tables: reports, activity_log (read by admins)

"""
reports:
- id: uuid (primary key)
- reporter_id: uuid (references profiles.id)
- reported_animal_id: uuid (nullable, references animals.id)
- reported_user_id: uuid (nullable, references profiles.id)
- reason: text (not null)
- status: text ('pending' | 'resolved' | 'dismissed')
- created_at, updated_at: timestamp

activity_log:
- id, created_at and free-form action/description/user_id/details columns
"""
