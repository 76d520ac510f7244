"""
Database Schema Reference
=========================

This file provides a quick reference for all database tables and columns.
For actual SQLAlchemy models, see: gen_scheduler/db/models.py

"""

# ============================================================================
# MASTERS - One generation campaign (one subject and class)
# ============================================================================
#
# | Column              | Type                  | Constraints                     |
# |---------------------|-----------------------|---------------------------------|
# | id                  | UUID                  | PRIMARY KEY                     |
# | nama                | VARCHAR(200)          | NULLABLE                        |
# | generate_status     | ENUM(generate_status) | NOT NULL, DEFAULT 'belum_siap'  |
# | generate_updated_at | TIMESTAMP(TZ)         | NOT NULL, INDEX                 |
# | percobaan           | INTEGER               | NOT NULL, DEFAULT 0             |
# | dokumen_total       | INTEGER               | NOT NULL, DEFAULT 0             |
# | dokumen_selesai     | INTEGER               | NOT NULL, DEFAULT 0             |
# | dokumen_error       | INTEGER               | NOT NULL, DEFAULT 0             |
# | created_at          | TIMESTAMP(TZ)         | DEFAULT now()                   |
#
# Enums:
#   generate_status: 'belum_siap' | 'belum_mulai' | 'menunggu' | 'sedang_jalan'
#                    | 'sedang_proses' | 'selesai' | 'error'
#
# Notes:
#   - generate_updated_at is stamped on every status transition; the
#     scheduler orders pools by it and uses it to detect stuck masters.
#   - At most MAX_CONCURRENT masters should be 'sedang_jalan' at a time.
#
# Relationships:
#   - babs:                ONE-TO-MANY -> babs.master_id (CASCADE DELETE)
#   - generation_statuses: ONE-TO-MANY -> generation_status.master_id (CASCADE DELETE)


# ============================================================================
# BABS - Ordered chapters of a master
# ============================================================================
#
# | Column     | Type          | Constraints                          |
# |------------|---------------|--------------------------------------|
# | id         | UUID          | PRIMARY KEY                          |
# | master_id  | UUID          | NOT NULL, FK(masters.id), INDEX      |
# | nomor      | INTEGER       | NOT NULL, UNIQUE(master_id, nomor)   |
# | judul      | TEXT          | NULLABLE                             |
# | created_at | TIMESTAMP(TZ) | DEFAULT now()                        |


# ============================================================================
# GENERATION_STATUS - Progress of one generated document
# ============================================================================
#
# | Column       | Type                     | Constraints                     |
# |--------------|--------------------------|---------------------------------|
# | id           | UUID                     | PRIMARY KEY                     |
# | master_id    | UUID                     | NOT NULL, FK(masters.id), INDEX |
# | jenis        | ENUM(document_kind)      | NOT NULL                        |
# | bab_id       | UUID                     | NULLABLE, FK(babs.id)           |
# | status       | ENUM(generation_state)   | NOT NULL, DEFAULT 'pending'     |
# | current_step | INTEGER                  | NOT NULL, DEFAULT 0             |
# | total_steps  | INTEGER                  | NULLABLE                        |
# | file_path    | TEXT                     | NULLABLE                        |
# | updated_at   | TIMESTAMP(TZ)            | DEFAULT now()                   |
#
# Enums:
#   document_kind:    'prota' | 'prosem' (bab_id NULL) | 'rpm' | 'lkpd' (per bab)
#   generation_state: 'pending' | 'generating' | 'generating_ai' | 'done' | 'error'
#
# Unique:
#   - (master_id, jenis, bab_id)
#   - (master_id, jenis) WHERE bab_id IS NULL


# ============================================================================
# STORE PROCEDURES (gen_scheduler/services/job_store.py)
# ============================================================================
#
# init_generation_for_master(master_id)
#     Insert missing prota/prosem rows and rpm/lkpd rows per bab. Idempotent.
#
# sync_progress(master_id)
#     Recompute masters.dokumen_total / dokumen_selesai / dokumen_error.
#
# finalize_after_sync(master_id)
#     no rows                -> belum_siap
#     all done               -> selesai
#     all done or error      -> error
#     some done / generating -> menunggu
#     otherwise              -> belum_mulai
