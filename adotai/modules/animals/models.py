# Supabase tables: animals; view: animals_with_advertiser
# Actual operations are handled via Supabase SDK in service.py

"""
animals:
- id: uuid (primary key)
- name, species: text (not null)
- breed, size, gender, color, description, location, special_needs: text (nullable)
- age: integer (nullable)
- image_url: text - first photo
- additional_images: text[]
- characteristics: text[]
- status: text ('available' | 'pending' | 'adopted' | 'removed')
- advertiser_id: uuid (references profiles.id)
- created_at, updated_at: timestamp

animals_with_advertiser (optional read view):
- animals.* plus advertiser_name, advertiser_email, advertiser_phone,
  advertiser_address from the advertiser's profile
"""
