"""
Integration tests for the Job Mail Pipeline.

Test components against real external services:
- Redis processing store (marked with @pytest.mark.integration, database 15)
"""
