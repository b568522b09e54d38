"""Process entry points"""
