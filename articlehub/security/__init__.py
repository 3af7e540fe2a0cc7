# Security package.
#
#   passwords — salted PBKDF2 hashing and verification (pure functions)
#   tokens    — signed, expiring session tokens (JWT, subject = user id)
#
# Neither module touches the database or reads ambient settings; the
# signing secret and TTL are handed to ``TokenService`` at startup.
