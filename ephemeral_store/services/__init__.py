"""
Services
Storage engine, validation, sweeping and stats
"""
