# Supabase tables: conversations, messages

"""
conversations:
- id: uuid (primary key)
- animal_id: uuid (references animals.id)
- adopter_id, advertiser_id: uuid (references profiles.id)
- status: text ('active' | 'completed' | 'closed', default 'active')
- created_at: timestamp
- updated_at: timestamp - bumped on every new message
- unique (animal_id, adopter_id, advertiser_id) when the schema enforces it

messages (append-only):
- id: uuid (primary key)
- conversation_id: uuid (references conversations.id)
- sender_id: uuid (references profiles.id)
- content: text (not null)
- created_at: timestamp
"""
