"""
engagehub.api.v1 - API Version 1
"""
