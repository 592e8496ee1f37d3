#!/usr/bin/env python3
"""
Generate secure secrets for Daily Slate Pick'em
Run this script to generate SECRET_KEY, WTF_CSRF_SECRET_KEY and CRON_SECRET
"""

import secrets


def generate_secrets():
    """Generate secure random keys for the application"""
    print("🔐 Generating secure secrets for Daily Slate Pick'em...")
    print("=" * 50)

    print(f"SECRET_KEY={secrets.token_urlsafe(32)}")
    print(f"WTF_CSRF_SECRET_KEY={secrets.token_urlsafe(32)}")
    # Sent by the external cron as "Authorization: Bearer <CRON_SECRET>"
    print(f"CRON_SECRET={secrets.token_hex(24)}")

    print("=" * 50)
    print("📝 Copy these values to your .env file")
    print("⚠️  Keep these secrets secure and never commit them to version control!")


if __name__ == "__main__":
    generate_secrets()
