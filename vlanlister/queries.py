from .xmc_client import XMCClient

DEVICE_LIST_QUERY = """
query {
  network {
    devices {
      up
      ip
    }
  }
}
"""

REDISCOVER_MUTATION = """
mutation {
  network {
    rediscoverDevices(input: {devices: [{ipAddress: "%(ip)s"}]}) {
      status
      message
    }
  }
}
"""

DEVICE_DETAIL_QUERY = """
query {
  network {
    device(ip: "%(ip)s") {
      id
      up
      baseMac
      ip
      sysName
      sysLocation
      nickName
      entityData {
        allPorts {
          ifIndex
          ifPhysAddress
          ifName
          ifAdminStatus
          ifOperStatus
          vlanList
        }
      }
    }
    deviceVlans(ip: "%(ip)s") {
      type
      vid
      name
      primaryIp
      netmask
    }
  }
}
"""


def fetch_device_list(client: XMCClient) -> bytes:
    return client.query(DEVICE_LIST_QUERY)


def trigger_rediscover(client: XMCClient, ip_address: str) -> bytes:
    # Asks XMC to re-poll one device; the rediscover itself runs in the background on XMC.
    return client.query(REDISCOVER_MUTATION % {"ip": ip_address})


def fetch_device_detail(client: XMCClient, ip_address: str) -> bytes:
    return client.query(DEVICE_DETAIL_QUERY % {"ip": ip_address})
