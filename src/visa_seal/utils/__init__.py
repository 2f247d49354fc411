"""
Text codecs shared by the MRZ and digital seal code.
"""
