# Ranges of the integer columns that hold caller-supplied values
INT4_MAX = 2**31 - 1
INT8_MAX = 2**63 - 1
