"""HTTP routers for the Publishing API."""
