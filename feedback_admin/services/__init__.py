"""Business services: authentication flow, OTP delivery, sessions and export."""
