# Supabase tables: adoption_requests; view: adoption_requests_detailed

"""
adoption_requests:
- id: uuid (primary key)
- animal_id: uuid (references animals.id)
- adopter_id: uuid (references profiles.id)
- status: text ('pending' | 'approved' | 'rejected')
- message, status_message: text (nullable)
- scheduled_visit: timestamp (nullable)
- created_at, updated_at: timestamp

At most one approved request per animal; the animal is 'adopted' once one is.

adoption_requests_detailed (optional read view):
- adoption_requests.* plus animal_name, animal_species, animal_breed,
  animal_image_url, adopter_name, adopter_email, adopter_phone,
  advertiser_id, advertiser_name, advertiser_email
"""
