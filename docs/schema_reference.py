"""
Database Schema Reference
=========================

This file provides a quick reference for all database tables and columns.
For actual SQLAlchemy models, see: digest_api/db/models.py

"""

# ============================================================================
# REPORTS - One row per submitted digest request
# ============================================================================
#
# | Column           | Type              | Constraints                       |
# |------------------|-------------------|-----------------------------------|
# | report_id        | VARCHAR(32)       | PRIMARY KEY, rpt_YYYYMMDD_xxxxxx  |
# | status           | ENUM(ReportStatus)| NOT NULL, INDEX                   |
# | source           | ENUM(ReportSource)| NOT NULL                          |
# | channel_id       | VARCHAR(255)      | NULLABLE                          |
# | video_id         | VARCHAR(255)      | NULLABLE                          |
# | url              | TEXT              | NULLABLE                          |
# | format           | ENUM(ReportFormat)| NOT NULL                          |
# | language         | TEXT              | NOT NULL, as sent by the client   |
# | summary_title    | TEXT              | NULLABLE, set on completion       |
# | summary_points   | JSON              | NULLABLE, list of strings         |
# | word_count       | INTEGER           | NULLABLE                          |
# | full_text        | TEXT              | NULLABLE                          |
# | delivery_method  | ENUM(DeliveryMethod) | NOT NULL                       |
# | delivery_address | TEXT              | NULLABLE, email or webhook URL    |
# | delivery_status  | ENUM(DeliveryStatus) | NOT NULL                       |
# | created_at       | TIMESTAMP(TZ)     | NOT NULL, INDEX                   |
# | completed_at     | TIMESTAMP(TZ)     | NULLABLE                          |
#
# Status transitions (compare-and-set on status):
#   processing -> completed
#   processing -> failed
#
# Delivery status:
#   method=none            : none (from creation)
#   method=email           : queued -> sent | failed
#   method=webhook         : queued (no webhook transport yet)


# ============================================================================
# LEGACY_REPORTS - Backing store for /api/report/{id}
# ============================================================================
#
# | Column      | Type          | Constraints                              |
# |-------------|---------------|------------------------------------------|
# | id          | VARCHAR(255)  | PRIMARY KEY, client supplied             |
# | title       | TEXT          | NULLABLE                                 |
# | created_at  | VARCHAR(40)   | NOT NULL, ISO-8601 string                |


# ============================================================================
# ENUMS
# ============================================================================
#
#   ReportStatus   : processing, completed, failed
#   ReportSource   : youtube, podcast, article
#   ReportFormat   : summary, detailed, bullet_points
#   DeliveryMethod : email, webhook, none
#   DeliveryStatus : queued, sent, failed, none
